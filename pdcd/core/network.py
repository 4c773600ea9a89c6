"""
Reaction network representation and management.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO

import numpy as np
import scipy.sparse as sp

from ..utils.constants import format_quantity, parse_quantity
from .clusters import AnyCluster, Cluster, ClusterDescriptor, ClusterRegistry, SuperCluster
from .connectivity import DEFAULT_RULES, ConnectivityBuilder, ReactionRule, rules_from_config
from .energetics import BindingEnergyModel
from .fluxes import FluxComponents, FluxJacobianEngine
from .grouping import GroupingConfiguration, SectionalGrouper
from .materials import Material
from .rates import RateConfiguration, RateConstantEvaluator
from .reactions import ReactionCatalog
from .species import Composition, Species

logger = logging.getLogger(__name__)


@dataclass
class NetworkConfiguration:
    """Configuration of a reaction network."""

    material: str = "W"
    atomic_volume: Optional[float] = None  # nm^3, material default if None
    dissociations_enabled: bool = True
    rules: Optional[List[ReactionRule]] = None  # material default if None
    grouping: Optional[GroupingConfiguration] = None

    def __post_init__(self):
        if self.material not in DEFAULT_RULES:
            raise ValueError(f"Unknown material {self.material}. Available materials: {list(DEFAULT_RULES)}")
        if self.atomic_volume is not None and self.atomic_volume <= 0:
            raise ValueError(f"Atomic volume must be positive, got {self.atomic_volume}")

    @classmethod
    def from_config(cls, config: Dict[str, Any], max_sizes: Optional[Dict[str, int]] = None) -> "NetworkConfiguration":
        """Create a configuration from the ``network`` section of a configuration."""
        atomic_volume = config.get("atomic_volume")
        if atomic_volume is not None:
            atomic_volume = parse_quantity(atomic_volume, default_unit="nm^3", target_unit="nm^3")
        rules = rules_from_config(config["rules"]) if config.get("rules") is not None else None
        grouping = None
        if (grouping_config := config.get("grouping")) is not None:
            grouping = GroupingConfiguration.from_config(grouping_config, max_sizes=max_sizes)
        return cls(
            material=config.get("material", "W"),
            atomic_volume=atomic_volume,
            dissociations_enabled=config.get("dissociations_enabled", True),
            rules=rules,
            grouping=grouping,
        )

    def to_config(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {
            "material": self.material,
            "dissociations_enabled": self.dissociations_enabled,
        }
        if self.atomic_volume is not None:
            config["atomic_volume"] = f"{self.atomic_volume} nm^3"
        if self.rules is not None:
            config["rules"] = [str(rule) for rule in self.rules]
        if self.grouping is not None:
            config["grouping"] = self.grouping.to_config()
        return config


class ReactionNetwork:
    """
    Owns the clusters, the reactions and the flux engine of one network.

    Parameters
    ----------
    configuration : NetworkConfiguration, optional
        Material, atomic volume, rules and grouping. Default configuration if not provided.
    binding_model : BindingEnergyModel, optional
        Binding energy model used for dissociation rates.

    Lifecycle: add clusters, ``apply_grouping`` (optional, once), ``create_reaction_connectivity``
    (once), ``reinitialize``, then ``set_temperature`` and the per call flux/Jacobian methods.
    After ``remove_clusters`` the caller must call ``reinitialize`` before any flux call.
    """

    def __init__(
        self,
        configuration: Optional[NetworkConfiguration] = None,
        binding_model: Optional[BindingEnergyModel] = None,
    ):
        self.configuration = configuration if configuration is not None else NetworkConfiguration()
        self.material = Material.from_name(self.configuration.material, self.configuration.atomic_volume)
        self.registry = ClusterRegistry()
        self.catalog = ReactionCatalog()
        self.rate_configuration = RateConfiguration(
            atomic_volume=self.material.atomic_volume,
            dissociations_enabled=self.configuration.dissociations_enabled,
        )
        self.evaluator = RateConstantEvaluator(self.registry, self.catalog, self.rate_configuration, binding_model)
        self.engine = FluxJacobianEngine(self.registry, self.catalog)
        self.temperature: Optional[float] = None
        self._grouped = False
        self._connected = False
        self._concentrations = np.zeros(0)

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Iterable[ClusterDescriptor],
        configuration: Optional[NetworkConfiguration] = None,
        temperature: Optional[float] = None,
        binding_model: Optional[BindingEnergyModel] = None,
    ) -> "ReactionNetwork":
        """Build a complete network from a cluster source."""
        logger.info("Building reaction network...")
        start_time = time.time()
        network = cls(configuration, binding_model)
        for descriptor in descriptors:
            network.add(network.create_cluster(descriptor))
        if network.configuration.grouping is not None:
            network.apply_grouping(network.configuration.grouping)
        network.create_reaction_connectivity()
        network.reinitialize()
        if temperature is not None:
            network.set_temperature(temperature)
        logger.info(f"Reaction network built in {time.time() - start_time:.3f} seconds")
        return network

    # ------------------------------------------------------------------ construction

    def create_cluster(self, descriptor: ClusterDescriptor) -> Cluster:
        """Create a cluster for this network's material from a descriptor."""
        composition = descriptor.composition
        if not isinstance(composition, Composition):
            composition = Composition(composition)
        return Cluster(
            composition=composition,
            reaction_radius=self.material.reaction_radius(composition),
            formation_energy=descriptor.formation_energy,
            migration_energy=descriptor.migration_energy,
            diffusion_factor=descriptor.diffusion_factor,
        )

    def add(self, cluster: Cluster) -> None:
        if self._connected:
            raise RuntimeError("Clusters cannot be added after the reaction connectivity is built")
        self.registry.add(cluster)
        if self.temperature is not None:
            cluster.set_temperature(self.temperature)

    def add_super(self, super_cluster: SuperCluster) -> None:
        if self._connected:
            raise RuntimeError("Clusters cannot be added after the reaction connectivity is built")
        self.registry.add_super(super_cluster)

    def apply_grouping(self, grouping: GroupingConfiguration) -> List[SuperCluster]:
        """Coarse grain the registry. Allowed once, before the connectivity is built."""
        if self._grouped:
            raise RuntimeError("Grouping has already been applied to this network")
        if self._connected:
            raise RuntimeError("Grouping must be applied before the reaction connectivity is built")
        super_clusters = SectionalGrouper(grouping, self.material).apply(self.registry)
        self._grouped = True
        return super_clusters

    def create_reaction_connectivity(self) -> None:
        """Enumerate the reactions of the final cluster set."""
        if self._connected:
            raise RuntimeError("The reaction connectivity has already been built")
        self.registry.reinitialize()
        rules = self.configuration.rules
        if rules is None:
            rules = DEFAULT_RULES[self.material.name]
        ConnectivityBuilder(self.registry, rules).build(self.catalog)
        self._connected = True

    def remove_clusters(self, clusters: Iterable[AnyCluster]) -> None:
        """Remove clusters and their reactions; ``reinitialize`` must follow."""
        clusters = list(clusters)
        self.catalog.remove_clusters(c.id for c in clusters)
        self.registry.remove(clusters)
        logger.info(f"Removed {len(clusters)} clusters, the network must be reinitialized")

    def reinitialize(self) -> None:
        """Reassign dense ids and rebuild the sparsity pattern."""
        old_ids = [(cluster, cluster.id) for cluster in self.registry]
        self.registry.reinitialize()
        self.catalog.remap({old_id: cluster.id for cluster, old_id in old_ids})
        self.evaluator.calculate_binding_energies()
        self.engine.compile(
            active_dissociations=self.evaluator.get_active_dissociations(),
            production_classes=self.evaluator.get_production_rate_classes(),
        )
        self._concentrations = np.zeros(self.get_dof())
        if self.temperature is not None:
            self.set_temperature(self.temperature)

    # ------------------------------------------------------------------ temperature

    def set_temperature(self, temperature: float) -> None:
        """Set the network temperature and recompute every rate constant."""
        if temperature <= 0:
            raise ValueError(f"Temperature must be positive, got {temperature}")
        self.temperature = temperature
        for cluster in self.registry:
            cluster.set_temperature(temperature)
        self.evaluator.calculate_all_rate_constants(temperature)
        if self.engine.dof:
            self.engine.update_rate_constants()

    @property
    def biggest_rate(self) -> float:
        """Largest production rate constant at the current temperature."""
        return self.evaluator.biggest_rate

    # ------------------------------------------------------------------ lookups

    def get(self, species: Species | str, size: int) -> Optional[Cluster]:
        return self.registry.get(species, size)

    def get_compound(self, composition: Composition | Dict[str, int]) -> Optional[Cluster]:
        return self.registry.get_compound(composition)

    def get_super(self, composition: Composition | Dict[str, int]) -> Optional[SuperCluster]:
        return self.registry.get_super(composition)

    def get_all(self) -> List[AnyCluster]:
        return self.registry.get_all()

    @property
    def size(self) -> int:
        """Number of clusters, super clusters included."""
        return len(self.registry)

    def get_dof(self) -> int:
        """Number of degrees of freedom.

        One per cluster plus one first moment per grouped axis of every super cluster. With
        He-V grouping each super cluster carries two moments (helium and vacancy), so the DOF
        is the cluster count plus twice the super cluster count.
        """
        return self.registry.dof

    def get_diagonal_fill(self) -> Dict[int, List[int]]:
        """Row id -> column ids of the Jacobian (1 based ids)."""
        return {
            row + 1: [int(column) + 1 for column in self.engine.get_row_columns(row)]
            for row in range(self.get_dof())
        }

    # ------------------------------------------------------------------ concentrations and fluxes

    def update_concentrations_from_array(self, concentrations: np.ndarray) -> None:
        """Use ``concentrations`` (length DOF, indexed by id - 1) for the per cluster queries."""
        concentrations = np.asarray(concentrations, dtype=float)
        if concentrations.shape != (self.get_dof(),):
            raise ValueError(f"Expected {self.get_dof()} concentrations, got shape {concentrations.shape}")
        self._concentrations = concentrations

    def get_concentration(self, cluster: AnyCluster, composition: Optional[Composition] = None) -> float:
        """Concentration of a raw cluster, or of one member of a super cluster."""
        value = self._concentrations[cluster.id - 1]
        if cluster.is_super and composition is not None:
            for axis in cluster.axes:
                value += cluster.distance(axis, composition) * self._concentrations[cluster.moment_ids[axis] - 1]
        return float(value)

    def get_moment(self, super_cluster: SuperCluster, axis: Species) -> float:
        return float(self._concentrations[super_cluster.moment_ids[axis] - 1])

    def _row_components(self, row: int) -> FluxComponents:
        components = self.engine.compute_flux_components(self._concentrations)
        return FluxComponents(*(float(values[row]) for values in components))

    def get_production_flux(self, cluster: AnyCluster) -> float:
        return self._row_components(cluster.id - 1).production

    def get_combination_flux(self, cluster: AnyCluster) -> float:
        return self._row_components(cluster.id - 1).combination

    def get_dissociation_flux(self, cluster: AnyCluster) -> float:
        return self._row_components(cluster.id - 1).dissociation

    def get_emission_flux(self, cluster: AnyCluster) -> float:
        return self._row_components(cluster.id - 1).emission

    def get_total_flux(self, cluster: AnyCluster) -> float:
        """production - combination + dissociation - emission"""
        components = self._row_components(cluster.id - 1)
        return components.production - components.combination + components.dissociation - components.emission

    def get_moment_flux(self, super_cluster: SuperCluster, axis: Species) -> float:
        components = self._row_components(super_cluster.moment_ids[axis] - 1)
        return components.production - components.combination + components.dissociation - components.emission

    def get_partial_derivatives(self, cluster: AnyCluster) -> np.ndarray:
        """Dense row of partial derivatives of the cluster flux, length DOF."""
        return self.engine.get_partial_row(self._concentrations, cluster.id - 1)

    def get_moment_partial_derivatives(self, super_cluster: SuperCluster, axis: Species) -> np.ndarray:
        return self.engine.get_partial_row(self._concentrations, super_cluster.moment_ids[axis] - 1)

    def get_connectivity(self, cluster: AnyCluster) -> np.ndarray:
        """0/1 vector of length DOF marking the columns the cluster flux depends on."""
        connectivity = np.zeros(self.get_dof(), dtype=np.int8)
        connectivity[self.engine.get_connected_columns(cluster.id - 1)] = 1
        return connectivity

    def compute_all_fluxes(self, concentrations: np.ndarray, fluxes: Optional[np.ndarray] = None) -> np.ndarray:
        """Net flux of every degree of freedom, written into ``fluxes`` when given."""
        self.update_concentrations_from_array(concentrations)
        if fluxes is None:
            fluxes = np.zeros(self.get_dof())
        return self.engine.compute_all_fluxes(self._concentrations, fluxes)

    def compute_all_partials(
        self,
        concentrations: np.ndarray,
        values: np.ndarray,
        indices: np.ndarray,
        row_sizes: np.ndarray,
    ) -> None:
        """Fill the Jacobian in CSR order, see ``get_nnz`` for the array lengths."""
        self.update_concentrations_from_array(concentrations)
        self.engine.compute_all_partials(self._concentrations, values, indices, row_sizes)

    def get_nnz(self) -> int:
        return self.engine.nnz

    def get_jacobian(self, concentrations: np.ndarray) -> sp.csr_matrix:
        self.update_concentrations_from_array(concentrations)
        return self.engine.get_jacobian(self._concentrations)

    def get_total_atom_concentration(self, species: Species | str, concentrations: Optional[np.ndarray] = None) -> float:
        """Total number density of one species, members of super clusters included."""
        species = Species.from_symbol(species)
        if concentrations is not None:
            self.update_concentrations_from_array(concentrations)
        total = 0.0
        for cluster in self.registry:
            if cluster.is_super:
                for member in cluster.members:
                    total += member[species] * self.get_concentration(cluster, member)
            else:
                total += cluster.composition[species] * self.get_concentration(cluster)
        return total

    # ------------------------------------------------------------------ reporting

    def get_network_summary(self) -> Dict[str, Any]:
        """Get a summary of the network."""
        return {
            "material": self.material.name,
            "n_clusters": len(self.registry.raw),
            "n_super_clusters": len(self.registry.supers),
            "dof": self.get_dof(),
            **self.catalog.get_process_statistics(),
            "temperature": self.temperature,
            "atomic_volume": self.material.atomic_volume,
            "dissociations_enabled": self.rate_configuration.dissociations_enabled,
            "biggest_rate": self.biggest_rate,
        }

    def print_summary(self) -> None:
        """Print a summary of the network."""
        summary = self.get_network_summary()

        print("Reaction Network Summary")
        print("==================")
        print(f"Material: {summary['material']}")
        print(f"Clusters: {summary['n_clusters']}")
        print(f"Super clusters: {summary['n_super_clusters']}")
        print(f"Degrees of freedom: {summary['dof']}")
        print(f"Production reactions: {summary['production_reactions']}")
        print(f"Dissociation reactions: {summary['dissociation_reactions']}")
        if summary["temperature"] is not None:
            print(f"Temperature: {format_quantity(summary['temperature'], 'K', 1)}")
        print(f"Atomic volume: {format_quantity(summary['atomic_volume'], 'nm^3', 5)}")
        print(f"Dissociations enabled: {summary['dissociations_enabled']}")

    def dump_to(self, stream: TextIO) -> None:
        """Write a deterministic listing of the clusters and their reactions."""
        for cluster in self.registry:
            kinds = {
                "production": sorted(self.catalog.get_production_reactions(cluster.id)),
                "combination": sorted(self.catalog.get_combination_reactions(cluster.id)),
                "dissociation": sorted(self.catalog.get_dissociation_reactions(cluster.id)),
                "emission": sorted(self.catalog.get_emission_reactions(cluster.id)),
            }
            counts = " ".join(f"{kind}={len(reactions)}" for kind, reactions in kinds.items())
            if cluster.is_super:
                header = f"{cluster.id} {cluster.label} members={cluster.member_count} moments=" + ",".join(
                    f"{axis.value}:{moment_id}" for axis, moment_id in cluster.moment_ids.items()
                )
            else:
                header = f"{cluster.id} {cluster.label} size={cluster.size}"
            stream.write(f"{header} {counts}\n")
            for kind, reactions in kinds.items():
                for reaction in reactions:
                    stream.write(f"  {kind}: {reaction}\n")
