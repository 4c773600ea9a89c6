"""
Rate constant definitions and calculations.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..utils.constants import BOLTZMANN_CONSTANT_EV, PI
from .clusters import ClusterRegistry
from .energetics import BindingEnergyModel, EnergyTerm, FormationEnergyDifference
from .reactions import ReactantRef, ReactionCatalog

logger = logging.getLogger(__name__)


@dataclass
class RateConfiguration:
    """Configuration for rate constants."""

    atomic_volume: float  # nm^3
    dissociations_enabled: bool = True

    def __post_init__(self):
        if not self.atomic_volume > 0:
            raise ValueError(f"Atomic volume must be positive, got {self.atomic_volume}")


def production_rate_constant(
    first_radius: float, second_radius: float, first_diffusion: float, second_diffusion: float
) -> float:
    """Diffusion limited capture rate k+ = 4 pi (rA + rB)(DA + DB) in nm^3/s."""
    return 4.0 * PI * (first_radius + second_radius) * (first_diffusion + second_diffusion)


def dissociation_rate_constant(
    production_rate: float, binding_energy: float, temperature: float, atomic_volume: float
) -> float:
    """Detailed balance k- = k+ exp(-Eb / kB T) / Omega in 1/s. A non finite binding energy disables it."""
    if not math.isfinite(binding_energy):
        return 0.0
    return production_rate / atomic_volume * math.exp(-binding_energy / (BOLTZMANN_CONSTANT_EV * temperature))


class RateConstantEvaluator:
    """Computes and caches the rate constants of every reaction in a catalog.

    Parameters
    ----------
    registry : ClusterRegistry
        Clusters of the network.
    catalog : ReactionCatalog
        Reactions whose rate constants are computed in place.
    configuration : RateConfiguration
        Atomic volume and dissociation switch.
    binding_model : BindingEnergyModel, optional
        Binding energy model, formation energy differences by default.
    """

    def __init__(
        self,
        registry: ClusterRegistry,
        catalog: ReactionCatalog,
        configuration: RateConfiguration,
        binding_model: Optional[BindingEnergyModel] = None,
    ):
        self.registry = registry
        self.catalog = catalog
        self.configuration = configuration
        self.binding_model: BindingEnergyModel = binding_model or FormationEnergyDifference()
        self.biggest_rate: float = 0.0
        self.temperature: Optional[float] = None
        # incremented every time the rate constants change
        self.version: int = 0

    def calculate_all_rate_constants(self, temperature: float) -> None:
        """Recompute every production and dissociation rate constant at a temperature.

        Cluster diffusion coefficients must already be at ``temperature``.
        """
        if temperature <= 0:
            raise ValueError(f"Temperature must be positive, got {temperature}")
        start_time = time.time()
        biggest_rate = 0.0
        for reaction in self.catalog.productions:
            first_radius, first_diffusion, _ = self._properties(reaction.first)
            second_radius, second_diffusion, _ = self._properties(reaction.second)
            reaction.rate_constant = production_rate_constant(
                first_radius, second_radius, first_diffusion, second_diffusion
            )
            biggest_rate = max(biggest_rate, reaction.rate_constant)

        if not self.configuration.dissociations_enabled:
            logger.info("Dissociation rates disabled, skipping calculation.")
        self.calculate_binding_energies()
        for reaction in self.catalog.dissociations:
            production = self.catalog.productions[reaction.reverse_reaction]
            if self.configuration.dissociations_enabled:
                reaction.rate_constant = dissociation_rate_constant(
                    production.rate_constant,
                    reaction.binding_energy,
                    temperature,
                    self.configuration.atomic_volume,
                )
            else:
                reaction.rate_constant = 0.0

        self.biggest_rate = biggest_rate
        self.temperature = temperature
        self.version += 1
        logger.debug(
            f"Rate constants at {temperature} K computed in {time.time() - start_time:.3f} seconds, "
            f"biggest production rate {biggest_rate:.4e} nm^3/s"
        )

    def calculate_binding_energies(self) -> None:
        """Binding energy of every dissociation; independent of temperature."""
        for reaction in self.catalog.dissociations:
            reaction.binding_energy = self.binding_model.binding_energy(
                self._energy_term(reaction.first_product),
                self._energy_term(reaction.second_product),
                self._energy_term(reaction.emitting),
            )

    def get_active_dissociations(self) -> List[bool]:
        """Whether each dissociation can have a nonzero rate at some temperature."""
        return [
            self.configuration.dissociations_enabled and math.isfinite(reaction.binding_energy)
            for reaction in self.catalog.dissociations
        ]

    def get_production_rate_classes(self) -> List[Tuple]:
        """A key per production reaction; reactions sharing a key have equal k+ at every temperature.

        k+ depends on the two clusters (through their diffusion coefficients) and on the sum of
        the participant radii.
        """
        classes = []
        for reaction in self.catalog.productions:
            first_radius = self._properties(reaction.first)[0]
            second_radius = self._properties(reaction.second)[0]
            cluster_ids = tuple(sorted((reaction.first.cluster_id, reaction.second.cluster_id)))
            classes.append((cluster_ids, first_radius + second_radius))
        return classes

    def _properties(self, ref: ReactantRef) -> Tuple[float, float, float]:
        """Radius, diffusion coefficient and formation energy of a participant."""
        cluster = self.registry.get_by_id(ref.cluster_id)
        if cluster.is_super:
            # members are immobile
            return (
                cluster.member_radii[ref.composition],
                0.0,
                cluster.member_formation_energies[ref.composition],
            )
        return cluster.reaction_radius, cluster.diffusion_coefficient, cluster.formation_energy

    def _energy_term(self, ref: ReactantRef) -> EnergyTerm:
        return EnergyTerm(ref.composition, self._properties(ref)[2])

    def get_production_rate_constants(self) -> np.ndarray:
        return np.array([r.rate_constant for r in self.catalog.productions], dtype=float)

    def get_dissociation_rate_constants(self) -> np.ndarray:
        return np.array([r.rate_constant for r in self.catalog.dissociations], dtype=float)
