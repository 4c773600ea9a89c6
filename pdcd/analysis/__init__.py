"""
Analysis module for PDCD network inspection and plotting.
"""

from .graph import create_reaction_graph, plot_reaction_graph
from .visualization import (
    get_hev_concentration_map,
    plot_concentrations,
    plot_hev_distribution,
    plot_rate_constants,
)

__all__ = [
    # Reaction graph
    "create_reaction_graph",
    "plot_reaction_graph",
    # Visualization functions
    "plot_rate_constants",
    "plot_concentrations",
    "get_hev_concentration_map",
    "plot_hev_distribution",
]
