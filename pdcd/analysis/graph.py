"""
Reaction graph of a network using networkx.
"""

from typing import Optional, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
from matplotlib.axes import Axes

from ..core.network import ReactionNetwork
from ..core.species import Species


def create_reaction_graph(network: ReactionNetwork, concentrations: Optional[np.ndarray] = None) -> nx.DiGraph:
    """
    Create a directed graph of the network: one node per cluster, an edge from every reactant
    to the product of each production reaction.

    Parameters
    ----------
    network : ReactionNetwork
    concentrations : np.ndarray, optional
        When given, edges carry the production ``flux`` at these concentrations.

    Returns
    -------
    graph : nx.DiGraph
    """
    graph = nx.DiGraph()
    for cluster in network.get_all():
        graph.add_node(cluster.label, super=cluster.is_super, shape=cluster.shape)
    rates = None
    if concentrations is not None:
        rates, _ = network.engine.compute_reaction_rates(np.asarray(concentrations, dtype=float))
    registry = network.registry
    for index, reaction in enumerate(network.catalog.productions):
        product = registry.get_by_id(reaction.product.cluster_id).label
        for reactant in (reaction.first, reaction.second):
            source = registry.get_by_id(reactant.cluster_id).label
            if graph.has_edge(source, product):
                data = graph.edges[source, product]
                data["reactions"] += 1
            else:
                graph.add_edge(source, product, reactions=1, flux=0.0)
                data = graph.edges[source, product]
            if rates is not None:
                data["flux"] += float(rates[index])
    return graph


def plot_reaction_graph(
    network: ReactionNetwork,
    graph: Optional[nx.DiGraph] = None,
    ax: Optional[Axes] = None,
    figsize: Tuple[int, int] = (10, 10),
) -> Axes:
    """Plot the reaction graph with clusters placed by their He and V content."""
    if graph is None:
        graph = create_reaction_graph(network)
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    pos = {}
    for cluster in network.get_all():
        if cluster.is_super:
            x_loc = cluster.mean_composition[Species.HE]
            y_loc = cluster.mean_composition[Species.V] - cluster.mean_composition[Species.I]
        else:
            x_loc = cluster.composition[Species.HE] + cluster.composition[Species.XE]
            y_loc = cluster.composition[Species.V] - cluster.composition[Species.I]
        pos[cluster.label] = (x_loc, y_loc)
    node_size = 300
    nx.draw_networkx_nodes(graph, pos=pos, node_size=node_size, node_shape="o", ax=ax)
    nx.draw_networkx_edges(graph, pos=pos, edge_color="gray", arrowstyle="-|>", ax=ax, node_size=node_size)
    nx.draw_networkx_labels(graph, pos=pos, font_size=8, ax=ax)
    ax.set_xlabel("Number of He (Xe)")
    ax.set_ylabel("Number of V (negative: I)")
    ax.set_title("Reaction Graph")
    return ax
