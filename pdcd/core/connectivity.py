"""
Reaction rules and construction of the reaction connectivity.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeAlias

from .clusters import AnyCluster, ClusterRegistry
from .reactions import ReactantRef, ReactionCatalog
from .species import Composition, Species

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SameSpeciesClustering:
    """A_a + A_b -> A_(a+b)"""

    species: Species

    @property
    def shapes(self) -> Tuple[str, str]:
        return self.species.value, self.species.value

    def __str__(self) -> str:
        return f"{self.species} + {self.species}"


@dataclass(frozen=True)
class MixedClustering:
    """A_a + B_b -> (AB), selected by the composition shapes of the reactants."""

    first_shape: str
    second_shape: str

    @property
    def shapes(self) -> Tuple[str, str]:
        return self.first_shape, self.second_shape

    def __str__(self) -> str:
        return f"{self.first_shape} + {self.second_shape}"


ReactionRule: TypeAlias = SameSpeciesClustering | MixedClustering

DEFAULT_RULES: Dict[str, List[ReactionRule]] = {
    "W": [
        SameSpeciesClustering(Species.HE),
        SameSpeciesClustering(Species.V),
        SameSpeciesClustering(Species.I),
        MixedClustering("He", "V"),
        MixedClustering("He", "HeV"),
        MixedClustering("V", "HeV"),
        MixedClustering("He", "I"),
        MixedClustering("He", "HeI"),
    ],
    "UO2": [
        SameSpeciesClustering(Species.XE),
    ],
}


def rules_from_config(config: Sequence[Any]) -> List[ReactionRule]:
    """Parse rules written as 'He + He' or ['He', 'HeV']."""
    rules: List[ReactionRule] = []
    for entry in config:
        if isinstance(entry, str):
            parts = [part.strip() for part in entry.split("+")]
        else:
            parts = [str(part).strip() for part in entry]
        if len(parts) != 2:
            raise ValueError(f"A reaction rule needs exactly two reactant shapes, got {entry}")
        first, second = parts
        if first == second and first in {s.value for s in Species}:
            rules.append(SameSpeciesClustering(Species.from_symbol(first)))
        else:
            rules.append(MixedClustering(first, second))
    return rules


class ConnectivityBuilder:
    """
    Enumerates the legal production reactions of a registry and their reverse dissociations.

    Parameters
    ----------
    registry : ClusterRegistry
        The final (raw and super) cluster set.
    rules : Sequence[ReactionRule]
        Species combination rules to enumerate.

    Reverse dissociations are always created; whether they are active is decided by the rate
    constants.
    """

    def __init__(self, registry: ClusterRegistry, rules: Sequence[ReactionRule]):
        self.registry = registry
        self.rules = list(rules)

    def build(self, catalog: Optional[ReactionCatalog] = None) -> ReactionCatalog:
        """Populate and return the reaction catalog."""
        logger.info("Building reaction connectivity...")
        start_time = time.time()
        catalog = catalog if catalog is not None else ReactionCatalog()
        for rule in self.rules:
            first_shape, second_shape = rule.shapes
            first_clusters = self.registry.get_all_by_shape(first_shape)
            second_clusters = self.registry.get_all_by_shape(second_shape)
            n_before = len(catalog.productions)
            for i, first in enumerate(first_clusters):
                # unordered pairs within the same shape
                partners = first_clusters[i:] if first_shape == second_shape else second_clusters
                for second in partners:
                    self._process_cluster_pair(catalog, first, second)
            logger.debug(f"Rule {rule}: {len(catalog.productions) - n_before} production reactions")
        end_time = time.time()
        logger.info(
            f"Connectivity built in {end_time - start_time:.3f} seconds: "
            f"{len(catalog.productions)} productions, {len(catalog.dissociations)} dissociations"
        )
        return catalog

    def _process_cluster_pair(self, catalog: ReactionCatalog, first: AnyCluster, second: AnyCluster) -> None:
        # no flux is possible between two immobile clusters
        if first.diffusion_factor == 0.0 and second.diffusion_factor == 0.0:
            return
        for first_ref in self._reactant_refs(first):
            for second_ref in self._reactant_refs(second):
                product_ref = self._product_ref(first_ref.composition + second_ref.composition)
                # products outside the network are skipped
                if product_ref is None:
                    continue
                index, created = catalog.add_production(first_ref, second_ref, product_ref)
                if created and (first_ref.composition.size == 1 or second_ref.composition.size == 1):
                    catalog.add_dissociation(index)

    @staticmethod
    def _reactant_refs(cluster: AnyCluster) -> List[ReactantRef]:
        if cluster.is_super:
            return [ReactantRef(cluster.id, member) for member in cluster.members]
        return [ReactantRef(cluster.id, cluster.composition)]

    def _product_ref(self, composition: Composition) -> Optional[ReactantRef]:
        if (cluster := self.registry.get_compound(composition)) is not None:
            return ReactantRef(cluster.id, composition)
        if (super_cluster := self.registry.get_super(composition)) is not None:
            return ReactantRef(super_cluster.id, composition)
        return None
