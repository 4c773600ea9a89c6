"""
Visualization functions for PDCD networks and simulation results.
"""

from typing import List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes

from ..core.network import ReactionNetwork
from ..core.species import Species
from ..simulation.results import SimulationResults


def plot_rate_constants(
    network: ReactionNetwork,
    temperatures: Sequence[float],
    max_reactions: int = 10,
    ax: Optional[Axes] = None,
    figsize: Tuple[int, int] = (10, 6),
) -> Axes:
    """
    Plot production rate constants against inverse temperature (Arrhenius plot).

    The network temperature is restored afterwards.

    Parameters
    ----------
    network : ReactionNetwork
    temperatures : Sequence[float]
        Temperatures in K.
    max_reactions : int
        Number of production reactions to plot, in catalog order.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    original_temperature = network.temperature
    productions = network.catalog.productions[:max_reactions]
    rates = np.zeros((len(temperatures), len(productions)))
    for i, temperature in enumerate(temperatures):
        network.set_temperature(temperature)
        rates[i] = [r.rate_constant for r in productions]
    if original_temperature is not None:
        network.set_temperature(original_temperature)

    inverse_temperature = 1000.0 / np.asarray(temperatures, dtype=float)
    for j, reaction in enumerate(productions):
        positive = rates[:, j] > 0
        ax.plot(inverse_temperature[positive], rates[positive, j], marker="o", label=str(reaction))
    ax.set_yscale("log")
    ax.set_xlabel("1000 / T (1/K)")
    ax.set_ylabel("Rate constant (nm$^3$ s$^{-1}$)")
    ax.set_title("Production Rate Constants")
    ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3)
    return ax


def plot_concentrations(
    results: SimulationResults,
    ax: Optional[Axes] = None,
    labels: Optional[List[str]] = None,
    log_scale: bool = True,
    figsize: Tuple[int, int] = (10, 6),
) -> Axes:
    """
    Plot cluster concentrations over time.

    Parameters
    ----------
    results : SimulationResults
        The simulation results to plot.
    ax : Optional[Axes]
        Existing axes to plot on. If None, creates new figure and axes.
    labels : Optional[List[str]]
        Clusters to plot. If None, plots the first 10 clusters.
    log_scale : bool
        Whether to use log scale for y-axis.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    if labels is None:
        labels = results.network.registry.get_labels()[:10]
    for label in labels:
        concentration = results.get_concentration(label)
        non_zero = concentration > 0
        ax.plot(results.time[non_zero], concentration[non_zero], label=label)
    if log_scale:
        ax.set_yscale("log")
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Concentration (nm$^{-3}$)")
    ax.set_title("Cluster Concentrations Over Time")
    ax.legend()
    ax.grid(True, alpha=0.3)
    return ax


def get_hev_concentration_map(network: ReactionNetwork, concentrations: np.ndarray) -> np.ndarray:
    """Concentrations on a (V, He) grid, grouped members expanded from their moments."""
    network.update_concentrations_from_array(np.asarray(concentrations, dtype=float))
    entries = []
    for cluster in network.get_all():
        if cluster.is_super:
            for member in cluster.members:
                entries.append((member, network.get_concentration(cluster, member)))
        elif cluster.shape in ("He", "V", "HeV"):
            entries.append((cluster.composition, network.get_concentration(cluster)))
    max_he = max((c[Species.HE] for c, _ in entries), default=0)
    max_v = max((c[Species.V] for c, _ in entries), default=0)
    grid = np.zeros((max_v + 1, max_he + 1))
    for composition, value in entries:
        grid[composition[Species.V], composition[Species.HE]] = value
    return grid


def plot_hev_distribution(
    results: SimulationResults,
    time_index: int = -1,
    ax: Optional[Axes] = None,
    figsize: Tuple[int, int] = (10, 8),
) -> Axes:
    """Plot the He-V cluster distribution at one time point."""
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    grid = get_hev_concentration_map(results.network, results.concentrations[time_index].copy())
    masked = np.ma.masked_less_equal(grid, 0.0)
    im = ax.pcolormesh(masked, cmap="viridis", norm="log" if masked.count() else None)
    plt.colorbar(im, ax=ax, label="Concentration (nm$^{-3}$)")
    ax.set_xlabel("Number of He")
    ax.set_ylabel("Number of V")
    ax.set_title(f"He-V Distribution at t = {results.time[time_index]:.3e} s")
    return ax
