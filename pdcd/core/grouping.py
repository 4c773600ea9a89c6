"""
Sectional coarse graining of composition space into super clusters.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .clusters import ClusterRegistry, SuperCluster
from .energetics import formation_energy
from .materials import Material
from .species import Composition, Species

logger = logging.getLogger(__name__)


@dataclass
class GroupingConfiguration:
    """Bucket bounds for sectional grouping.

    ``bounds[axis]`` lists the lower edges of contiguous buckets plus a final exclusive
    upper edge, e.g. ``[1, 4, 6]`` gives the buckets 1-3 and 4-5. Compositions whose
    coordinates are all below ``threshold`` stay ungrouped, as do those above ``max_sizes``.
    """

    threshold: int
    bounds: Dict[Species, List[int]]
    max_sizes: Dict[Species, int] = field(default_factory=dict)

    def __post_init__(self):
        self.bounds = {Species.from_symbol(axis): list(edges) for axis, edges in self.bounds.items()}
        self.max_sizes = {Species.from_symbol(axis): int(size) for axis, size in self.max_sizes.items()}
        if self.threshold < 1:
            raise ValueError(f"Grouping threshold must be at least 1, got {self.threshold}")
        if not self.bounds:
            raise ValueError("At least one grouped axis is required")
        for axis, edges in self.bounds.items():
            if len(edges) < 2:
                raise ValueError(f"Bounds for {axis} need at least two edges, got {edges}")
            if any(lo >= hi for lo, hi in zip(edges, edges[1:])):
                raise ValueError(f"Bounds for {axis} must be strictly increasing, got {edges}")
            if edges[0] < 0:
                raise ValueError(f"Bounds for {axis} must be non-negative, got {edges}")

    @property
    def axes(self) -> Tuple[Species, ...]:
        return tuple(self.bounds)

    @classmethod
    def from_widths(
        cls, threshold: int, widths: Dict[str, int], max_sizes: Dict[str, int], start: int = 1
    ) -> "GroupingConfiguration":
        """Bounds starting at ``start`` with a first bucket up to the threshold and then
        buckets of the given width per axis."""
        bounds = {}
        for axis, width in widths.items():
            if width < 1:
                raise ValueError(f"Grouping width must be at least 1, got {width} for {axis}")
            top = max_sizes[axis] + 1
            edges = [start] if start < threshold else []
            edge = max(threshold, start)
            while edge < top:
                edges.append(edge)
                edge += width
            edges.append(top)
            bounds[axis] = edges
        return cls(threshold=threshold, bounds=bounds, max_sizes=max_sizes)

    @classmethod
    def from_config(cls, config: Dict[str, Any], max_sizes: Dict[str, int] = None) -> "GroupingConfiguration":
        """Create a configuration from explicit ``bounds`` or from ``widths``."""
        max_sizes = dict(config.get("max_sizes", max_sizes or {}))
        if "threshold" not in config:
            raise ValueError("Grouping threshold is required")
        if "bounds" in config:
            return cls(threshold=config["threshold"], bounds=config["bounds"], max_sizes=max_sizes)
        if "widths" in config:
            missing = [axis for axis in config["widths"] if axis not in max_sizes]
            if missing:
                raise ValueError(f"Maximum sizes are required for grouped axes {missing}")
            return cls.from_widths(config["threshold"], config["widths"], max_sizes)
        raise ValueError("Grouping needs either 'bounds' or 'widths'")

    def to_config(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "bounds": {axis.value: list(edges) for axis, edges in self.bounds.items()},
            "max_sizes": {axis.value: size for axis, size in self.max_sizes.items()},
        }


class SectionalGrouper:
    """Replaces raw compositions in bucket regions with super clusters.

    Parameters
    ----------
    configuration : GroupingConfiguration
        Buckets and threshold.
    material : Material
        Provides member reaction radii.
    formation_energy_model : Callable[[Composition], float]
        Member formation energies.
    """

    def __init__(
        self,
        configuration: GroupingConfiguration,
        material: Material,
        formation_energy_model: Callable[[Composition], float] = formation_energy,
    ):
        self.configuration = configuration
        self.material = material
        self.formation_energy_model = formation_energy_model
        self.applied = False

    def bucket_members(self, ranges: Sequence[Tuple[int, int]]) -> List[Composition]:
        """Compositions of one bucket (inclusive ranges, one per axis)."""
        axes = self.configuration.axes
        threshold = self.configuration.threshold
        members = []
        for coords in itertools.product(*(range(lo, hi + 1) for lo, hi in ranges)):
            if all(c < threshold for c in coords):
                continue
            if any(c > self.configuration.max_sizes.get(axis, c) for axis, c in zip(axes, coords)):
                continue
            composition = Composition(dict(zip(axes, coords)))
            if composition.size == 0:
                continue
            members.append(composition)
        return members

    def apply(self, registry: ClusterRegistry) -> List[SuperCluster]:
        """Group the registry in place; may only run once."""
        if self.applied:
            raise RuntimeError("Sectional grouping has already been applied")
        logger.info("Applying sectional grouping...")
        start_time = time.time()
        axes = self.configuration.axes
        bucket_ranges = [
            [(lo, hi - 1) for lo, hi in zip(edges, edges[1:])] for edges in self.configuration.bounds.values()
        ]
        super_clusters: List[SuperCluster] = []
        n_replaced = 0
        for ranges in itertools.product(*bucket_ranges):
            members = self.bucket_members(ranges)
            # empty buckets produce no group
            if not members:
                continue
            replaced = [c for m in members if (c := registry.get_compound(m)) is not None]
            if replaced:
                registry.remove(replaced)
                n_replaced += len(replaced)
            super_cluster = SuperCluster(
                axes=axes,
                bounds=dict(zip(axes, ranges)),
                members=members,
                member_radii=[self.material.reaction_radius(m) for m in members],
                member_formation_energies=[self.formation_energy_model(m) for m in members],
            )
            registry.add_super(super_cluster)
            super_clusters.append(super_cluster)
            logger.debug(f"{super_cluster.label}: {super_cluster.member_count} members")
        self.applied = True
        logger.info(
            f"Sectional grouping created {len(super_clusters)} super clusters "
            f"(replacing {n_replaced} raw clusters) in {time.time() - start_time:.3f} seconds"
        )
        return super_clusters
