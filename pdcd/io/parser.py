"""
Input file parser for PDCD.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..core.clusters import ClusterDescriptor
from ..core.network import NetworkConfiguration, ReactionNetwork
from ..utils.constants import parse_quantity
from .loader import ClusterGenerator, load_descriptors


class InputParser:
    """Parser for PDCD input files."""

    def __init__(self):
        pass

    def _parse_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Parse YAML format input file."""
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)
        return data or {}

    def get_descriptors(self, source: Dict[str, Any], base_path: Optional[Path] = None) -> List[ClusterDescriptor]:
        """Cluster descriptors of a ``source`` section (generated or loaded from a file)."""
        source_type = source.get("type", "generate")
        if source_type == "generate":
            return ClusterGenerator.from_config(source).generate()
        if source_type == "file":
            path = Path(source["path"])
            if base_path is not None and not path.is_absolute():
                path = base_path / path
            return load_descriptors(path)
        raise ValueError(f"Unknown cluster source type {source_type}. Available types: ['generate', 'file']")

    def get_network_from_config(self, data: Dict[str, Any], base_path: Optional[Path] = None) -> ReactionNetwork:
        """Build a network from a parsed configuration."""
        network_data = dict(data.get("network", {}))
        network_data.setdefault("material", data.get("material", "W"))
        source = network_data.get("source", {"type": "generate"})
        max_sizes = None
        if source.get("type", "generate") == "generate":
            max_sizes = ClusterGenerator.from_config(source).max_sizes
        configuration = NetworkConfiguration.from_config(network_data, max_sizes=max_sizes)
        temperature = self.get_temperature(data)
        return ReactionNetwork.from_descriptors(
            self.get_descriptors(source, base_path), configuration, temperature=temperature
        )

    def get_network_from_yaml(self, file_path: Union[str, Path]) -> ReactionNetwork:
        """Parse a network YAML file and return the network, at temperature when one is given."""
        file_path = Path(file_path)
        data = self._parse_yaml_file(file_path)
        return self.get_network_from_config(data, base_path=file_path.parent)

    def get_temperature(self, data: Dict[str, Any]) -> Optional[float]:
        temperature = data.get("conditions", {}).get("temperature")
        if temperature is None:
            return None
        return parse_quantity(temperature, default_unit="K", target_unit="K")

    def get_simulation_from_yaml(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Parse the ``simulation`` section of a YAML file."""
        data = self._parse_yaml_file(Path(file_path))
        simulation_data = dict(data.get("simulation", {}))
        if "t_span" in simulation_data:
            simulation_data["t_span"] = tuple(
                parse_quantity(value, default_unit="s", target_unit="s") for value in simulation_data["t_span"]
            )
        return simulation_data
