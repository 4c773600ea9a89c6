from pathlib import Path

import pytest
import yaml
from conftest import DIFFUSION_NETWORK

from pdcd.core.species import Species
from pdcd.io.parser import InputParser


def write_yaml(path: Path, data) -> Path:
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


def test_generated_network(tmp_path) -> None:
    path = write_yaml(
        tmp_path / "network.yaml",
        {
            "material": "W",
            "network": {"source": {"type": "generate", "max_he": 3, "max_v": 2, "max_i": 1}},
            "conditions": {"temperature": "1000 K"},
        },
    )
    network = InputParser().get_network_from_yaml(path)
    assert network.size == 12
    assert network.get_dof() == 12
    assert network.temperature == pytest.approx(1000.0)
    assert network.material.name == "W"
    assert network.get("He", 3) is not None


def test_file_network_relative_path(tmp_path) -> None:
    (tmp_path / "clusters.txt").write_text(DIFFUSION_NETWORK)
    path = write_yaml(
        tmp_path / "network.yaml",
        {"network": {"source": {"type": "file", "path": "clusters.txt"}, "dissociations_enabled": False}},
    )
    network = InputParser().get_network_from_yaml(path)
    assert network.get_dof() == 10
    assert network.temperature is None
    # reverse reactions exist but stay inactive
    assert len(network.catalog.dissociations) > 0
    assert not any(network.evaluator.get_active_dissociations())


def test_grouped_network_from_widths(tmp_path) -> None:
    path = write_yaml(
        tmp_path / "network.yaml",
        {
            "network": {
                "source": {"type": "generate", "max_he": 4, "max_v": 4},
                "grouping": {"threshold": 3, "widths": {"He": 2, "V": 2}},
            },
            "conditions": {"temperature": 800},
        },
    )
    network = InputParser().get_network_from_yaml(path)
    assert network.configuration.grouping.bounds[Species.HE] == [1, 3, 5]
    assert len(network.registry.supers) == 3
    assert network.temperature == pytest.approx(800.0)


def test_unknown_source(tmp_path) -> None:
    path = write_yaml(tmp_path / "network.yaml", {"network": {"source": {"type": "database"}}})
    with pytest.raises(ValueError):
        InputParser().get_network_from_yaml(path)


def test_simulation_section(tmp_path) -> None:
    path = write_yaml(
        tmp_path / "network.yaml",
        {
            "simulation": {
                "t_span": ["0 s", "2 ms"],
                "initial_conditions": {"He1": {"type": "initial", "value": "1e-3 nm^-3"}},
            }
        },
    )
    simulation = InputParser().get_simulation_from_yaml(path)
    assert simulation["t_span"] == pytest.approx((0.0, 2.0e-3))
    assert simulation["initial_conditions"]["He1"]["type"] == "initial"


def test_example_file() -> None:
    path = Path(__file__).parent.parent / "examples" / "tungsten_network.yaml"
    network = InputParser().get_network_from_yaml(path)
    assert network.temperature == pytest.approx(1000.0)
    assert network.get_super({"He": 5, "V": 5}) is not None
    assert network.get_dof() == network.size + 2 * len(network.registry.supers)
