"""
Reaction records and the reaction catalog.
"""

import logging
from collections import defaultdict, namedtuple
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

# A reaction participant: the owning cluster id and the composition taking part.
# For raw clusters the composition is the cluster's own, for super clusters it is a member.
ReactantRef = namedtuple("ReactantRef", ["cluster_id", "composition"])


@dataclass
class ProductionReaction:
    """first + second -> product"""

    first: ReactantRef
    second: ReactantRef
    product: ReactantRef
    rate_constant: float = 0.0

    def __str__(self) -> str:
        return f"{self.first.composition} + {self.second.composition} -> {self.product.composition}"


@dataclass
class DissociationReaction:
    """emitting -> first_product + second_product, reverse of ``reverse_reaction``"""

    emitting: ReactantRef
    first_product: ReactantRef
    second_product: ReactantRef
    reverse_reaction: int  # index of the production reaction
    binding_energy: float = float("inf")
    rate_constant: float = 0.0

    def __str__(self) -> str:
        return f"{self.emitting.composition} -> {self.first_product.composition} + {self.second_product.composition}"


def _canonical_pair(first: ReactantRef, second: ReactantRef) -> Tuple[ReactantRef, ReactantRef]:
    """Order a pair so that size(first) <= size(second), earlier species first on ties."""
    if second.composition < first.composition:
        return second, first
    return first, second


class ReactionCatalog:
    """
    Owns the production and dissociation reactions of a network.

    Every reaction is registered with the clusters it involves so per-cluster fluxes can be
    assembled without scanning the whole catalog.
    """

    def __init__(self):
        self.productions: List[ProductionReaction] = []
        self.dissociations: List[DissociationReaction] = []
        self._production_index: Dict[Tuple[ReactantRef, ReactantRef, ReactantRef], int] = {}
        self._dissociation_index: Dict[int, int] = {}
        self._reset_registrations()

    def _reset_registrations(self) -> None:
        # cluster id -> reaction indices
        self.production_indices: Dict[int, List[int]] = defaultdict(list)
        self.combination_indices: Dict[int, List[int]] = defaultdict(list)
        self.dissociation_indices: Dict[int, List[int]] = defaultdict(list)
        self.emission_indices: Dict[int, List[int]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self.productions) + len(self.dissociations)

    def add_production(self, first: ReactantRef, second: ReactantRef, product: ReactantRef) -> Tuple[int, bool]:
        """Add first + second -> product.

        Returns the reaction index and whether it was created; an existing reaction with the
        same unordered pair and product is returned instead of a duplicate.
        """
        first, second = _canonical_pair(first, second)
        key = (first, second, product)
        if (index := self._production_index.get(key)) is not None:
            return index, False
        index = len(self.productions)
        self.productions.append(ProductionReaction(first, second, product))
        self._production_index[key] = index
        self._register_production(index)
        return index, True

    def add_dissociation(self, production_index: int) -> int:
        """Add the dissociation reversing a production reaction."""
        if (index := self._dissociation_index.get(production_index)) is not None:
            return index
        production = self.productions[production_index]
        index = len(self.dissociations)
        self.dissociations.append(
            DissociationReaction(
                emitting=production.product,
                first_product=production.first,
                second_product=production.second,
                reverse_reaction=production_index,
            )
        )
        self._dissociation_index[production_index] = index
        self._register_dissociation(index)
        return index

    def _register_production(self, index: int) -> None:
        reaction = self.productions[index]
        self.production_indices[reaction.product.cluster_id].append(index)
        self.combination_indices[reaction.first.cluster_id].append(index)
        # a cluster reacting with itself is registered twice: it loses two members
        self.combination_indices[reaction.second.cluster_id].append(index)

    def _register_dissociation(self, index: int) -> None:
        reaction = self.dissociations[index]
        self.emission_indices[reaction.emitting.cluster_id].append(index)
        self.dissociation_indices[reaction.first_product.cluster_id].append(index)
        self.dissociation_indices[reaction.second_product.cluster_id].append(index)

    def get_production(self, first: ReactantRef, second: ReactantRef, product: ReactantRef) -> ProductionReaction | None:
        first, second = _canonical_pair(first, second)
        index = self._production_index.get((first, second, product))
        return self.productions[index] if index is not None else None

    def remove_clusters(self, cluster_ids: Iterable[int]) -> None:
        """Drop every reaction involving one of the given clusters."""
        removed = set(cluster_ids)
        kept_productions: List[ProductionReaction] = []
        new_index: Dict[int, int] = {}
        for index, reaction in enumerate(self.productions):
            ids = {reaction.first.cluster_id, reaction.second.cluster_id, reaction.product.cluster_id}
            if ids & removed:
                continue
            new_index[index] = len(kept_productions)
            kept_productions.append(reaction)
        kept_dissociations = []
        for reaction in self.dissociations:
            # a dissociation lives exactly as long as its production
            if reaction.reverse_reaction in new_index:
                reaction.reverse_reaction = new_index[reaction.reverse_reaction]
                kept_dissociations.append(reaction)
        logger.info(
            f"Removed {len(self.productions) - len(kept_productions)} production and "
            f"{len(self.dissociations) - len(kept_dissociations)} dissociation reactions"
        )
        self.productions = kept_productions
        self.dissociations = kept_dissociations
        self._rebuild_indices()

    def remap(self, id_map: Dict[int, int]) -> None:
        """Rewrite cluster ids after the registry has been reinitialized."""

        def _ref(ref: ReactantRef) -> ReactantRef:
            return ReactantRef(id_map[ref.cluster_id], ref.composition)

        for reaction in self.productions:
            reaction.first = _ref(reaction.first)
            reaction.second = _ref(reaction.second)
            reaction.product = _ref(reaction.product)
        for reaction in self.dissociations:
            reaction.emitting = _ref(reaction.emitting)
            reaction.first_product = _ref(reaction.first_product)
            reaction.second_product = _ref(reaction.second_product)
        self._rebuild_indices()

    def _rebuild_indices(self) -> None:
        self._reset_registrations()
        self._production_index = {}
        self._dissociation_index = {}
        for index, reaction in enumerate(self.productions):
            self._production_index[(reaction.first, reaction.second, reaction.product)] = index
            self._register_production(index)
        for index, reaction in enumerate(self.dissociations):
            self._dissociation_index[reaction.reverse_reaction] = index
            self._register_dissociation(index)

    def get_production_reactions(self, cluster_id: int) -> List[str]:
        """Reactions producing the cluster."""
        return [str(self.productions[i]) for i in self.production_indices.get(cluster_id, [])]

    def get_combination_reactions(self, cluster_id: int) -> List[str]:
        """Reactions consuming the cluster (listed once per consumed member)."""
        return [str(self.productions[i]) for i in self.combination_indices.get(cluster_id, [])]

    def get_dissociation_reactions(self, cluster_id: int) -> List[str]:
        """Dissociations releasing the cluster."""
        return [str(self.dissociations[i]) for i in self.dissociation_indices.get(cluster_id, [])]

    def get_emission_reactions(self, cluster_id: int) -> List[str]:
        """Dissociations of the cluster itself."""
        return [str(self.dissociations[i]) for i in self.emission_indices.get(cluster_id, [])]

    def get_process_statistics(self) -> Dict[str, int]:
        return {
            "production_reactions": len(self.productions),
            "dissociation_reactions": len(self.dissociations),
            "clusters_with_production": sum(1 for v in self.production_indices.values() if v),
            "clusters_with_emission": sum(1 for v in self.emission_indices.values() if v),
        }

    def get_production_dataframe(self) -> pd.DataFrame:
        """Production reactions as a table."""
        return pd.DataFrame(
            [
                {
                    "first": str(r.first.composition),
                    "second": str(r.second.composition),
                    "product": str(r.product.composition),
                    "first_id": r.first.cluster_id,
                    "second_id": r.second.cluster_id,
                    "product_id": r.product.cluster_id,
                    "rate_constant": r.rate_constant,
                }
                for r in self.productions
            ],
            columns=["first", "second", "product", "first_id", "second_id", "product_id", "rate_constant"],
        )

    def get_dissociation_dataframe(self) -> pd.DataFrame:
        """Dissociation reactions as a table."""
        return pd.DataFrame(
            [
                {
                    "emitting": str(r.emitting.composition),
                    "first_product": str(r.first_product.composition),
                    "second_product": str(r.second_product.composition),
                    "binding_energy": r.binding_energy,
                    "rate_constant": r.rate_constant,
                }
                for r in self.dissociations
            ],
            columns=["emitting", "first_product", "second_product", "binding_energy", "rate_constant"],
        )
