import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest
from conftest import random_concentrations
from matplotlib.axes import Axes

from pdcd.analysis import (
    create_reaction_graph,
    get_hev_concentration_map,
    plot_concentrations,
    plot_hev_distribution,
    plot_rate_constants,
    plot_reaction_graph,
)
from pdcd.simulation.solver import Simulation


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_reaction_graph(tungsten_network) -> None:
    graph = create_reaction_graph(tungsten_network)
    assert graph.number_of_nodes() == tungsten_network.size
    assert graph.has_edge("He1", "He1V1")
    assert graph.has_edge("V1", "He1V1")
    # the self reaction counts once per reactant slot
    assert graph.edges["He1", "He2"]["reactions"] == 2
    assert sum(d["reactions"] for _, _, d in graph.edges(data=True)) == 2 * len(tungsten_network.catalog.productions)


def test_reaction_graph_fluxes(small_network) -> None:
    concentrations = np.ones(small_network.get_dof())
    graph = create_reaction_graph(small_network, concentrations)
    reaction = small_network.catalog.productions[0]
    assert graph.edges["He1", "He1V50"]["flux"] == pytest.approx(reaction.rate_constant)


def test_plot_reaction_graph(grouped_network) -> None:
    assert isinstance(plot_reaction_graph(grouped_network), Axes)


def test_plot_rate_constants_restores_temperature(tungsten_network) -> None:
    before = [r.rate_constant for r in tungsten_network.catalog.productions]
    ax = plot_rate_constants(tungsten_network, [600.0, 800.0, 1200.0], max_reactions=3)
    assert isinstance(ax, Axes)
    assert len(ax.get_lines()) == 3
    assert tungsten_network.temperature == 1000.0
    assert [r.rate_constant for r in tungsten_network.catalog.productions] == before


def test_hev_concentration_map(grouped_network, rng) -> None:
    concentrations = random_concentrations(grouped_network, rng)
    grid = get_hev_concentration_map(grouped_network, concentrations)
    assert grid.shape == (5, 5)
    assert grid[1, 1] == concentrations[grouped_network.get_compound({"He": 1, "V": 1}).id - 1]
    super_cluster = grouped_network.get_super({"He": 4, "V": 4})
    grouped_network.update_concentrations_from_array(concentrations)
    assert grid[4, 4] == pytest.approx(
        grouped_network.get_concentration(super_cluster, super_cluster.members[-1])
    )


def test_plot_results(tungsten_network) -> None:
    results = Simulation(tungsten_network).run(
        {"He1": {"type": "initial", "value": 1.0e-3}, "V1": {"type": "initial", "value": 1.0e-3}},
        t_span=(0.0, 1.0e-9),
    )
    assert isinstance(plot_concentrations(results, labels=["He1", "V1"]), Axes)
    assert isinstance(results.plot_concentrations(), Axes)
    assert isinstance(plot_hev_distribution(results), Axes)
