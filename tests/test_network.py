import io
import math

import numpy as np
import pytest

from pdcd.core.clusters import ClusterDescriptor
from pdcd.core.connectivity import MixedClustering, SameSpeciesClustering
from pdcd.core.grouping import GroupingConfiguration
from pdcd.core.network import NetworkConfiguration, ReactionNetwork
from pdcd.core.rates import production_rate_constant
from pdcd.core.species import Composition, Species
from pdcd.io.loader import ClusterGenerator, loads_descriptors
from pdcd.utils import BOLTZMANN_CONSTANT_EV

from conftest import SMALL_NETWORK, random_concentrations


def test_small_network_size_and_combination_flux(small_network) -> None:
    assert small_network.size == 4
    assert small_network.get_dof() == 4
    he1 = small_network.get("He", 1)
    v50 = small_network.get("V", 50)
    assert [str(r) for r in small_network.catalog.productions] == ["He1 + V50 -> He1V50"]
    # infinite energies disable the reverse reaction
    assert small_network.catalog.dissociations[0].rate_constant == 0.0

    small_network.update_concentrations_from_array(np.ones(4))
    k_plus = production_rate_constant(
        he1.reaction_radius, v50.reaction_radius, he1.diffusion_coefficient, v50.diffusion_coefficient
    )
    assert small_network.get_combination_flux(he1) == pytest.approx(k_plus)
    assert small_network.get_combination_flux(he1) > 0.0
    assert small_network.get_total_flux(he1) == pytest.approx(-k_plus)
    assert small_network.get_production_flux(small_network.get_compound({"He": 1, "V": 50})) == pytest.approx(k_plus)
    assert small_network.biggest_rate == pytest.approx(k_plus)


def test_lookups_return_none(small_network) -> None:
    assert small_network.get("He", 2) is None
    assert small_network.get_compound({"He": 2, "V": 50}) is None
    assert small_network.get_super({"He": 1, "V": 50}) is None


def test_duplicate_descriptor_raises() -> None:
    with pytest.raises(ValueError):
        ReactionNetwork.from_descriptors(loads_descriptors(SMALL_NETWORK + "1 0 0 6.15 0.13 2.9e10\n"))


def test_lifecycle_errors(small_network) -> None:
    grouping = GroupingConfiguration(threshold=2, bounds={"He": [1, 3]}, max_sizes={"He": 2})
    with pytest.raises(RuntimeError):
        small_network.apply_grouping(grouping)
    with pytest.raises(RuntimeError):
        small_network.create_reaction_connectivity()
    with pytest.raises(ValueError):
        small_network.set_temperature(0.0)


def test_vectorised_and_per_cluster_fluxes_agree(tungsten_network, rng) -> None:
    concentrations = rng.uniform(1.0e-4, 1.0e-2, tungsten_network.get_dof())
    fluxes = tungsten_network.compute_all_fluxes(concentrations)
    for cluster in tungsten_network.get_all():
        assert tungsten_network.get_total_flux(cluster) == pytest.approx(fluxes[cluster.id - 1], rel=1e-9, abs=1e-12 * np.abs(fluxes).max())


@pytest.mark.parametrize("network_name", ["small_network", "tungsten_network", "grouped_network"])
def test_connectivity_matches_partial_derivatives(network_name, request, rng) -> None:
    network = request.getfixturevalue(network_name)
    network.update_concentrations_from_array(random_concentrations(network, rng))
    for cluster in network.get_all():
        connectivity = network.get_connectivity(cluster)
        partials = network.get_partial_derivatives(cluster)
        assert set(np.flatnonzero(connectivity)) == set(np.flatnonzero(partials)), cluster.label
    for super_cluster in network.registry.supers:
        for axis in super_cluster.axes:
            partials = network.get_moment_partial_derivatives(super_cluster, axis)
            row_columns = network.engine.get_connected_columns(super_cluster.moment_ids[axis] - 1)
            assert set(row_columns) == set(np.flatnonzero(partials)), (super_cluster.label, axis)


def test_isolated_cluster_keeps_diagonal_fill(small_network) -> None:
    i1 = small_network.get("I", 1)
    assert not small_network.get_connectivity(i1).any()
    assert small_network.get_diagonal_fill()[i1.id] == [i1.id]
    # the infinite binding energy of He1V50 leaves no emission entry
    he1 = small_network.get("He", 1)
    he1v50 = small_network.get_compound({"He": 1, "V": 50})
    assert small_network.get_connectivity(he1)[he1v50.id - 1] == 0



def test_partials_match_finite_differences(tungsten_network, rng) -> None:
    concentrations = rng.uniform(1.0e-4, 1.0e-2, tungsten_network.get_dof())
    jacobian = tungsten_network.get_jacobian(concentrations).toarray()
    base = tungsten_network.compute_all_fluxes(concentrations.copy())
    for column in range(tungsten_network.get_dof()):
        step = 1.0e-7 * concentrations[column]
        shifted = concentrations.copy()
        shifted[column] += step
        # fluxes are quadratic, so a forward difference is exact up to the step term
        difference = (tungsten_network.compute_all_fluxes(shifted) - base) / step
        np.testing.assert_allclose(difference, jacobian[:, column], rtol=1e-4, atol=1e-6 * np.abs(jacobian).max())


def test_compute_all_partials_fills_caller_arrays(tungsten_network, rng) -> None:
    concentrations = rng.uniform(1.0e-4, 1.0e-2, tungsten_network.get_dof())
    nnz = tungsten_network.get_nnz()
    values = np.zeros(nnz)
    indices = np.zeros(nnz, dtype=np.int64)
    row_sizes = np.zeros(tungsten_network.get_dof(), dtype=np.int64)
    tungsten_network.compute_all_partials(concentrations, values, indices, row_sizes)
    assert row_sizes.sum() == nnz
    fill = tungsten_network.get_diagonal_fill()
    assert [len(fill[row + 1]) for row in range(tungsten_network.get_dof())] == list(row_sizes)
    np.testing.assert_array_equal(values, tungsten_network.get_jacobian(concentrations).data)


@pytest.mark.parametrize("temperature", [600.0, 1000.0, 1500.0])
def test_detailed_balance(tungsten_network, temperature) -> None:
    tungsten_network.set_temperature(temperature)
    checked = 0
    for reaction in tungsten_network.catalog.dissociations:
        if not math.isfinite(reaction.binding_energy):
            continue
        forward = tungsten_network.catalog.productions[reaction.reverse_reaction].rate_constant
        recovered = (
            reaction.rate_constant
            * tungsten_network.material.atomic_volume
            * math.exp(reaction.binding_energy / (BOLTZMANN_CONSTANT_EV * temperature))
        )
        assert recovered == pytest.approx(forward, rel=1e-9)
        checked += 1
    assert checked > 0


def test_set_temperature_is_idempotent(tungsten_network, rng) -> None:
    concentrations = rng.uniform(1.0e-4, 1.0e-2, tungsten_network.get_dof())
    tungsten_network.set_temperature(1000.0)
    rates = tungsten_network.evaluator.get_production_rate_constants()
    fluxes = tungsten_network.compute_all_fluxes(concentrations.copy())
    tungsten_network.set_temperature(700.0)
    tungsten_network.set_temperature(1000.0)
    np.testing.assert_array_equal(rates, tungsten_network.evaluator.get_production_rate_constants())
    np.testing.assert_array_equal(fluxes, tungsten_network.compute_all_fluxes(concentrations.copy()))


def test_species_are_conserved(tungsten_network, rng) -> None:
    concentrations = rng.uniform(1.0e-4, 1.0e-2, tungsten_network.get_dof())
    fluxes = tungsten_network.compute_all_fluxes(concentrations)
    scale = np.abs(fluxes).max()
    for species in (Species.HE, Species.V, Species.I):
        counts = np.array([c.composition[species] for c in tungsten_network.get_all()])
        assert np.dot(counts, fluxes) == pytest.approx(0.0, abs=1e-10 * scale * counts.sum())


def test_self_reaction_consumes_two_members() -> None:
    network = ReactionNetwork.from_descriptors(
        loads_descriptors("1 0 0 6.15 0.13 2.9e10\n2 0 0 11.44 inf 0\n"),
        NetworkConfiguration(dissociations_enabled=False),
        temperature=1000.0,
    )
    he1, he2 = network.get("He", 1), network.get("He", 2)
    k_plus = network.catalog.productions[0].rate_constant
    fluxes = network.compute_all_fluxes(np.array([2.0, 0.0]))
    assert fluxes[he1.id - 1] == pytest.approx(-2.0 * k_plus * 4.0)
    assert fluxes[he2.id - 1] == pytest.approx(k_plus * 4.0)
    (reaction,) = network.catalog.dissociations
    assert str(reaction) == "He2 -> He1 + He1"
    assert reaction.rate_constant == 0.0


def test_disabled_dissociations_keep_reverse_reactions() -> None:
    def _dump(enabled: bool) -> str:
        network = ReactionNetwork.from_descriptors(
            loads_descriptors("1 0 0 6.15 0.13 2.9e10\n2 0 0 11.44 inf 0\n"),
            NetworkConfiguration(dissociations_enabled=enabled),
            temperature=1000.0,
        )
        assert [str(r) for r in network.catalog.dissociations] == ["He2 -> He1 + He1"]
        stream = io.StringIO()
        network.dump_to(stream)
        return stream.getvalue()

    assert _dump(True) == _dump(False)

    network = ReactionNetwork.from_descriptors(
        loads_descriptors("1 0 0 6.15 0.13 2.9e10\n2 0 0 11.44 inf 0\n"),
        NetworkConfiguration(dissociations_enabled=False),
        temperature=1000.0,
    )
    he2 = network.get("He", 2)
    assert network.catalog.dissociations[0].rate_constant == 0.0
    assert network.get_emission_flux(he2) == 0.0
    assert list(network.get_connectivity(he2)) == [1, 0]


def test_helium_interstitial_reactions() -> None:
    descriptors = ClusterGenerator(max_he=2, max_i=1, max_hei=3).generate()
    assert [d.composition.label for d in descriptors] == ["I1", "He1", "He2", "He1I1", "He2I1"]
    network = ReactionNetwork.from_descriptors(descriptors, temperature=1000.0)
    reactions = {str(r) for r in network.catalog.productions}
    assert "He1 + I1 -> He1I1" in reactions
    assert "He1 + He1I1 -> He2I1" in reactions
    assert "I1 + He2 -> He2I1" in reactions
    he1i1 = network.get_compound({"He": 1, "I": 1})
    assert he1i1.diffusion_factor == 0.0
    # unknown formation energies leave the reverse reactions inactive
    emitted = [r for r in network.catalog.dissociations if "I1" in str(r)]
    assert emitted and all(r.rate_constant == 0.0 for r in emitted)


def test_single_axis_grouping_adds_one_moment() -> None:
    network = ReactionNetwork()
    for descriptor in ClusterGenerator(max_he=6).generate():
        network.add(network.create_cluster(descriptor))
    network.apply_grouping(GroupingConfiguration(threshold=3, bounds={"He": [3, 5, 7]}))
    network.create_reaction_connectivity()
    network.reinitialize()
    assert len(network.registry.supers) == 2
    assert network.get_dof() == network.size + len(network.registry.supers)


def test_rules_select_reactions() -> None:
    descriptors = ClusterGenerator(max_he=2, max_v=2).generate()
    configuration = NetworkConfiguration(rules=[SameSpeciesClustering(Species.HE), MixedClustering("He", "V")])
    network = ReactionNetwork.from_descriptors(descriptors, configuration)
    reactions = sorted(str(r) for r in network.catalog.productions)
    assert reactions == [
        "He1 + He1 -> He2",
        "He1 + V1 -> He1V1",
        "He1 + V2 -> He1V2",
        "He2 + V2 -> He2V2",
        "V1 + He2 -> He2V1",
    ]


def test_remove_clusters_and_reinitialize(tungsten_network, rng) -> None:
    n_clusters = tungsten_network.size
    i2 = tungsten_network.get("I", 2)
    tungsten_network.remove_clusters([i2])
    tungsten_network.reinitialize()
    assert tungsten_network.get("I", 2) is None
    assert tungsten_network.get_dof() == n_clusters - 1
    assert [c.id for c in tungsten_network.get_all()] == list(range(1, n_clusters))
    assert all("I2" not in str(r) for r in tungsten_network.catalog.productions)
    fluxes = tungsten_network.compute_all_fluxes(rng.uniform(1.0e-4, 1.0e-2, n_clusters - 1))
    assert np.all(np.isfinite(fluxes))


def test_dump_is_stable() -> None:
    def _dump() -> str:
        network = ReactionNetwork.from_descriptors(ClusterGenerator(max_he=3, max_v=2, max_i=1).generate())
        stream = io.StringIO()
        network.dump_to(stream)
        return stream.getvalue()

    first = _dump()
    assert first == _dump()
    lines = first.splitlines()
    assert lines[0] == "1 I1 size=1 production=0 combination=0 dissociation=0 emission=0"
    assert lines[1].startswith("2 He1 size=1 production=0 combination=")
    assert "  combination: He1 + He1 -> He2" in lines


def test_total_atom_concentration(small_network) -> None:
    concentrations = np.array([1.0, 2.0, 3.0, 4.0])
    assert small_network.get_total_atom_concentration("He", concentrations) == pytest.approx(5.0)
    assert small_network.get_total_atom_concentration(Species.V, concentrations) == pytest.approx(2.0 * 50 + 4.0 * 50)


def test_network_configuration_from_config() -> None:
    configuration = NetworkConfiguration.from_config(
        {
            "material": "W",
            "atomic_volume": "0.02 nm^3",
            "dissociations_enabled": False,
            "rules": ["He + He", ["V", "HeV"]],
            "grouping": {"threshold": 4, "widths": {"He": 2}},
        },
        max_sizes={"He": 8},
    )
    assert configuration.atomic_volume == pytest.approx(0.02)
    assert configuration.rules == [SameSpeciesClustering(Species.HE), MixedClustering("V", "HeV")]
    assert configuration.grouping.bounds == {Species.HE: [1, 4, 6, 8, 9]}
    assert configuration.to_config()["rules"] == ["He + He", "V + HeV"]
    with pytest.raises(ValueError):
        NetworkConfiguration(material="Fe")


def test_custom_descriptor_composition() -> None:
    descriptor = ClusterDescriptor(Composition(Xe=1), 0.0, 1.0, 1.0e11)
    network = ReactionNetwork.from_descriptors(
        [descriptor, ClusterDescriptor({"Xe": 2}, 7.0, math.inf, 0.0)],
        NetworkConfiguration(material="UO2"),
        temperature=1500.0,
    )
    assert [str(r) for r in network.catalog.productions] == ["Xe1 + Xe1 -> Xe2"]
    assert network.get_network_summary()["material"] == "UO2"
