import numpy as np
import pytest
from conftest import random_concentrations

from pdcd.core.clusters import ClusterRegistry
from pdcd.core.grouping import GroupingConfiguration, SectionalGrouper
from pdcd.core.materials import Material
from pdcd.core.network import ReactionNetwork
from pdcd.core.species import Composition, Species
from pdcd.io.loader import ClusterGenerator


def test_configuration_validation() -> None:
    with pytest.raises(ValueError):
        GroupingConfiguration(threshold=0, bounds={"He": [1, 3]})
    with pytest.raises(ValueError):
        GroupingConfiguration(threshold=2, bounds={})
    with pytest.raises(ValueError):
        GroupingConfiguration(threshold=2, bounds={"He": [1]})
    with pytest.raises(ValueError):
        GroupingConfiguration(threshold=2, bounds={"He": [1, 5, 3]})


def test_configuration_from_widths() -> None:
    grouping = GroupingConfiguration.from_widths(3, {"He": 2, "V": 3}, {"He": 6, "V": 8})
    assert grouping.bounds[Species.HE] == [1, 3, 5, 7]
    assert grouping.bounds[Species.V] == [1, 3, 6, 9]
    assert grouping.axes == (Species.HE, Species.V)
    with pytest.raises(ValueError):
        GroupingConfiguration.from_widths(3, {"He": 0}, {"He": 6})


def test_configuration_from_config() -> None:
    grouping = GroupingConfiguration.from_config({"threshold": 3, "widths": {"He": 2}}, {"He": 6})
    assert grouping.bounds[Species.HE] == [1, 3, 5, 7]
    assert GroupingConfiguration.from_config(grouping.to_config()) == grouping
    with pytest.raises(ValueError):
        GroupingConfiguration.from_config({"widths": {"He": 2}}, {"He": 6})
    with pytest.raises(ValueError):
        GroupingConfiguration.from_config({"threshold": 3, "widths": {"V": 2}}, {"He": 6})
    with pytest.raises(ValueError):
        GroupingConfiguration.from_config({"threshold": 3})


def test_super_clusters(grouped_network) -> None:
    supers = grouped_network.registry.supers
    assert len(supers) == 3
    assert all(s.member_count == 4 for s in supers)
    assert grouped_network.get_dof() == grouped_network.size + 2 * len(supers)

    super_cluster = grouped_network.get_super({"He": 3, "V": 1})
    assert super_cluster is not None
    assert super_cluster.label == "Super_He3-4V1-2"
    assert super_cluster.mean_composition[Species.HE] == pytest.approx(3.5)
    assert super_cluster.mean_composition[Species.V] == pytest.approx(1.5)
    for member in super_cluster.members:
        assert grouped_network.get_super(member) is super_cluster


def test_grouping_replaces_raw_clusters(grouped_network) -> None:
    assert grouped_network.get_compound({"He": 3, "V": 1}) is None
    assert grouped_network.get_compound({"He": 4, "V": 4}) is None
    # below the threshold on every axis
    assert grouped_network.get_compound({"He": 2, "V": 2}) is not None
    assert grouped_network.get_super({"He": 2, "V": 2}) is None
    assert grouped_network.get("V", 4) is not None


def test_moment_ids_follow_clusters(grouped_network) -> None:
    size = grouped_network.size
    moment_ids = sorted(i for s in grouped_network.registry.supers for i in s.moment_ids.values())
    assert moment_ids == list(range(size + 1, grouped_network.get_dof() + 1))
    for moment_id in moment_ids:
        owner, axis = grouped_network.registry.get_moment_owner(moment_id)
        assert owner.moment_ids[axis] == moment_id


def test_member_distances() -> None:
    registry = ClusterRegistry()
    grouping = GroupingConfiguration(threshold=1, bounds={"He": [1, 4]}, max_sizes={"He": 3})
    (super_cluster,) = SectionalGrouper(grouping, Material.from_name("W")).apply(registry)
    distances = [super_cluster.distance(Species.HE, m) for m in super_cluster.members]
    assert distances == pytest.approx([-1.0, 0.0, 1.0])
    assert super_cluster.distance_norms[Species.HE] == pytest.approx(2.0)


def test_grouping_only_once() -> None:
    registry = ClusterRegistry()
    grouper = SectionalGrouper(
        GroupingConfiguration(threshold=1, bounds={"He": [1, 3]}), Material.from_name("W")
    )
    grouper.apply(registry)
    with pytest.raises(RuntimeError):
        grouper.apply(registry)

    network = ReactionNetwork()
    for descriptor in ClusterGenerator(max_he=4, max_v=0, max_i=0).generate():
        network.add(network.create_cluster(descriptor))
    network.apply_grouping(GroupingConfiguration(threshold=3, bounds={"He": [3, 5]}))
    with pytest.raises(RuntimeError):
        network.apply_grouping(GroupingConfiguration(threshold=3, bounds={"He": [3, 5]}))


def test_member_concentration(grouped_network, rng) -> None:
    concentrations = random_concentrations(grouped_network, rng)
    grouped_network.update_concentrations_from_array(concentrations)
    super_cluster = grouped_network.get_super({"He": 4, "V": 3})
    member = Composition({"He": 4, "V": 3})
    expected = concentrations[super_cluster.id - 1] + sum(
        super_cluster.distance(axis, member) * concentrations[super_cluster.moment_ids[axis] - 1]
        for axis in super_cluster.axes
    )
    assert grouped_network.get_concentration(super_cluster, member) == pytest.approx(expected)
    assert grouped_network.get_moment(super_cluster, Species.HE) == concentrations[
        super_cluster.moment_ids[Species.HE] - 1
    ]


def test_grouped_fluxes_match_components(grouped_network, rng) -> None:
    concentrations = random_concentrations(grouped_network, rng)
    fluxes = grouped_network.compute_all_fluxes(concentrations).copy()
    scale = np.abs(fluxes).max()
    for cluster in grouped_network.get_all():
        assert grouped_network.get_total_flux(cluster) == pytest.approx(
            fluxes[cluster.id - 1], rel=1e-9, abs=1e-12 * scale
        )
    for super_cluster in grouped_network.registry.supers:
        for axis, moment_id in super_cluster.moment_ids.items():
            assert grouped_network.get_moment_flux(super_cluster, axis) == pytest.approx(
                fluxes[moment_id - 1], rel=1e-9, abs=1e-12 * scale
            )


def test_grouped_partials_match_finite_differences(grouped_network, rng) -> None:
    concentrations = random_concentrations(grouped_network, rng)
    jacobian = grouped_network.get_jacobian(concentrations).toarray()
    base = grouped_network.compute_all_fluxes(concentrations).copy()
    step = 1.0e-9
    tolerance = 1.0e-6 * np.abs(jacobian).max()
    for column in range(grouped_network.get_dof()):
        shifted = concentrations.copy()
        shifted[column] += step
        estimate = (grouped_network.compute_all_fluxes(shifted) - base) / step
        np.testing.assert_allclose(jacobian[:, column], estimate, rtol=1e-4, atol=tolerance)
