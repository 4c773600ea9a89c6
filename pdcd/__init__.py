"""
PDCD - Point-Defect Cluster Dynamics

Reaction network engine for clusters of vacancies, interstitials, helium and xenon: reaction
connectivity, rate constants, fluxes and sparse Jacobians for stiff integrators.
"""

from .core.clusters import Cluster, ClusterDescriptor, SuperCluster
from .core.grouping import GroupingConfiguration
from .core.network import NetworkConfiguration, ReactionNetwork
from .core.species import Composition, Species
from .io.loader import ClusterGenerator, load_descriptors
from .io.parser import InputParser
from .simulation.diffusion import Diffusion2DHandler
from .simulation.results import SimulationResults
from .simulation.solver import Simulation

__version__ = "0.1.0"
__author__ = "PDCD Python Team"

__all__ = [
    "Species",
    "Composition",
    "Cluster",
    "SuperCluster",
    "ClusterDescriptor",
    "GroupingConfiguration",
    "NetworkConfiguration",
    "ReactionNetwork",
    "ClusterGenerator",
    "load_descriptors",
    "InputParser",
    "Diffusion2DHandler",
    "Simulation",
    "SimulationResults",
]
