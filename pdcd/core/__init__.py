"""
Core reaction network functionality.
"""

from .clusters import AnyCluster, Cluster, ClusterDescriptor, ClusterRegistry, SuperCluster
from .connectivity import DEFAULT_RULES, ConnectivityBuilder, MixedClustering, SameSpeciesClustering, rules_from_config
from .energetics import (
    BindingEnergyModel,
    EnergyTerm,
    FormationEnergyDifference,
    TabulatedBindingEnergies,
    formation_energy,
    hev_formation_energy,
)
from .fluxes import FluxComponents, FluxJacobianEngine
from .grouping import GroupingConfiguration, SectionalGrouper
from .materials import Material
from .network import NetworkConfiguration, ReactionNetwork
from .rates import RateConfiguration, RateConstantEvaluator, dissociation_rate_constant, production_rate_constant
from .reactions import DissociationReaction, ProductionReaction, ReactantRef, ReactionCatalog
from .species import Composition, Species
from .symbolic import RateEquations

__all__ = [
    'Species', 'Composition',
    'Material',
    'formation_energy', 'hev_formation_energy',
    'EnergyTerm', 'BindingEnergyModel', 'FormationEnergyDifference', 'TabulatedBindingEnergies',
    'Cluster', 'SuperCluster', 'AnyCluster', 'ClusterDescriptor', 'ClusterRegistry',
    'ReactantRef', 'ProductionReaction', 'DissociationReaction', 'ReactionCatalog',
    'SameSpeciesClustering', 'MixedClustering', 'DEFAULT_RULES', 'rules_from_config', 'ConnectivityBuilder',
    'RateConfiguration', 'RateConstantEvaluator', 'production_rate_constant', 'dissociation_rate_constant',
    'FluxComponents', 'FluxJacobianEngine',
    'GroupingConfiguration', 'SectionalGrouper',
    'NetworkConfiguration', 'ReactionNetwork',
    'RateEquations',
]
