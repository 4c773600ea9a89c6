"""
Cluster definitions and the cluster registry.
"""

import logging
import math
from collections import OrderedDict, namedtuple
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeAlias, Union

import numpy as np

from ..utils.constants import BOLTZMANN_CONSTANT_EV
from .species import Composition, Species

logger = logging.getLogger(__name__)

# One entry of a cluster source: composition, energies in eV and D0 in nm^2/s
ClusterDescriptor = namedtuple(
    "ClusterDescriptor", ["composition", "formation_energy", "migration_energy", "diffusion_factor"]
)


class Cluster:
    """A cluster of point defects, identified by its composition.

    Parameters
    ----------
    composition : Composition
        Species counts of the cluster.
    reaction_radius : float
        Capture radius in nm.
    formation_energy : float
        Formation energy in eV.
    migration_energy : float
        Migration energy in eV (inf for immobile clusters).
    diffusion_factor : float
        Diffusion prefactor D0 in nm^2/s (0 for immobile clusters).
    """

    is_super = False

    def __init__(
        self,
        composition: Composition,
        reaction_radius: float,
        formation_energy: float = math.inf,
        migration_energy: float = math.inf,
        diffusion_factor: float = 0.0,
    ):
        if composition.size == 0:
            raise ValueError("A cluster must contain at least one point defect")
        if reaction_radius <= 0:
            raise ValueError(f"Reaction radius must be positive, got {reaction_radius}")
        if diffusion_factor < 0:
            raise ValueError(f"Diffusion factor must be non-negative, got {diffusion_factor}")
        self.composition: Composition = composition
        self.reaction_radius: float = reaction_radius
        self.formation_energy: float = formation_energy
        self.id: int = 0
        self._diffusion_factor: float = diffusion_factor
        self._migration_energy: float = migration_energy
        self._temperature: float = 0.0
        self._diffusion_coefficient: float = 0.0

    @property
    def size(self) -> int:
        return self.composition.size

    @property
    def label(self) -> str:
        return self.composition.label

    @property
    def shape(self) -> str:
        return self.composition.shape

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def diffusion_factor(self) -> float:
        return self._diffusion_factor

    @diffusion_factor.setter
    def diffusion_factor(self, value: float) -> None:
        self._diffusion_factor = value
        self._update_diffusion_coefficient()

    @property
    def migration_energy(self) -> float:
        return self._migration_energy

    @migration_energy.setter
    def migration_energy(self, value: float) -> None:
        self._migration_energy = value
        self._update_diffusion_coefficient()

    @property
    def diffusion_coefficient(self) -> float:
        """Diffusion coefficient in nm^2/s at the current temperature."""
        return self._diffusion_coefficient

    def set_temperature(self, temperature: float) -> None:
        """Set the temperature and recompute the diffusion coefficient."""
        self._temperature = temperature
        self._update_diffusion_coefficient()

    def _update_diffusion_coefficient(self) -> None:
        if self._diffusion_factor == 0.0 or self._temperature <= 0 or math.isinf(self._migration_energy):
            self._diffusion_coefficient = 0.0
        else:
            self._diffusion_coefficient = self._diffusion_factor * math.exp(
                -self._migration_energy / (BOLTZMANN_CONSTANT_EV * self._temperature)
            )

    def get_composition(self) -> Dict[str, int]:
        return self.composition.as_dict()

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return f"Cluster('{self.label}', id={self.id})"


class SuperCluster:
    """A coarse-grained group of raw compositions tracked by moments.

    The concentration of member ``m`` is approximated as
    ``l0 + sum_a distance(a, m) * l1_a`` where ``l0`` is the zeroth moment (mean member
    concentration) and ``l1_a`` the first moment along grouped axis ``a``.

    Parameters
    ----------
    axes : Sequence[Species]
        Grouped species axes.
    bounds : Dict[Species, Tuple[int, int]]
        Inclusive (min, max) bucket bounds per axis.
    members : Sequence[Composition]
        Raw compositions owned by the group.
    member_radii : Sequence[float]
        Reaction radius of every member in nm.
    member_formation_energies : Sequence[float]
        Formation energy of every member in eV.
    """

    is_super = True

    def __init__(
        self,
        axes: Sequence[Species],
        bounds: Dict[Species, Tuple[int, int]],
        members: Sequence[Composition],
        member_radii: Sequence[float],
        member_formation_energies: Sequence[float],
    ):
        if not members:
            raise ValueError("A super cluster needs at least one member")
        if len(members) != len(member_radii) or len(members) != len(member_formation_energies):
            raise ValueError("Member properties must have one entry per member")
        self.axes: Tuple[Species, ...] = tuple(axes)
        self.bounds: Dict[Species, Tuple[int, int]] = dict(bounds)
        self.members: Tuple[Composition, ...] = tuple(members)
        self.member_radii: Dict[Composition, float] = dict(zip(members, member_radii))
        self.member_formation_energies: Dict[Composition, float] = dict(
            zip(members, member_formation_energies)
        )
        self.id: int = 0
        self.moment_ids: Dict[Species, int] = {axis: 0 for axis in self.axes}
        self.mean_composition: Dict[Species, float] = {
            species: float(np.mean([m[species] for m in members])) for species in Species
        }
        # sum of squared distances, used to project member fluxes on the first moments
        self.distance_norms: Dict[Species, float] = {
            axis: sum(self.distance(axis, m) ** 2 for m in members) for axis in self.axes
        }
        self.reaction_radius: float = float(np.mean(member_radii))
        self.formation_energy: float = math.inf
        self.diffusion_factor: float = 0.0
        self.migration_energy: float = math.inf
        self.diffusion_coefficient: float = 0.0

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def size(self) -> float:
        """Mean size of the members."""
        return sum(self.mean_composition.values())

    @property
    def shape(self) -> str:
        return self.members[0].shape

    @property
    def label(self) -> str:
        ranges = "".join(f"{axis.value}{lo}-{hi}" for axis, (lo, hi) in self.bounds.items())
        return f"Super_{ranges}"

    def section_width(self, axis: Species) -> int:
        lo, hi = self.bounds[axis]
        return hi - lo + 1

    def distance(self, axis: Species, member: Composition) -> float:
        """Signed distance of a member from the group mean along an axis, in [-1, 1]."""
        lo, hi = self.bounds[axis]
        width = hi - lo + 1
        count = member[axis]
        if width <= 1 or not lo <= count <= hi:
            return 0.0
        return 2.0 * (count - self.mean_composition[axis]) / (width - 1)

    def contains(self, composition: Composition) -> bool:
        return composition in self.member_radii

    def set_temperature(self, temperature: float) -> None:
        """Members of a super cluster are immobile."""
        self.diffusion_coefficient = 0.0

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return f"SuperCluster('{self.label}', id={self.id}, members={self.member_count})"


AnyCluster: TypeAlias = Cluster | SuperCluster


class ClusterRegistry:
    """Owns every cluster of a network and provides lookups by composition.

    Clusters are stored in insertion order; ``reinitialize`` assigns dense ids
    (1..N) in that order, followed by the moment ids of the super clusters.
    """

    def __init__(self, clusters: Optional[Iterable[Cluster]] = None):
        self._clusters: List[AnyCluster] = []
        self._by_composition: Dict[Composition, Cluster] = OrderedDict()
        self._super_by_member: Dict[Composition, SuperCluster] = {}
        self._by_id: Dict[int, AnyCluster] = {}
        self._moment_owner: Dict[int, Tuple[SuperCluster, Species]] = {}
        self._dof: int = 0
        for cluster in clusters or []:
            self.add(cluster)

    def add(self, cluster: Cluster) -> None:
        """Add a raw cluster. Adding the same composition twice is an error."""
        composition = cluster.composition
        if composition in self._by_composition or composition in self._super_by_member:
            raise ValueError(f"Cluster {composition} has already been added to the network")
        self._clusters.append(cluster)
        self._by_composition[composition] = cluster
        cluster.id = len(self._clusters)

    def add_super(self, super_cluster: SuperCluster) -> None:
        """Add a super cluster and index its members."""
        for member in super_cluster.members:
            if member in self._by_composition or member in self._super_by_member:
                raise ValueError(f"Composition {member} of {super_cluster} is already in the network")
        self._clusters.append(super_cluster)
        for member in super_cluster.members:
            self._super_by_member[member] = super_cluster
        super_cluster.id = len(self._clusters)

    def remove(self, clusters: Iterable[AnyCluster]) -> None:
        """Remove clusters. Ids are stale until ``reinitialize`` is called."""
        to_remove = {id(cluster) for cluster in clusters}
        for cluster in self._clusters:
            if id(cluster) not in to_remove:
                continue
            if cluster.is_super:
                for member in cluster.members:
                    del self._super_by_member[member]
            else:
                del self._by_composition[cluster.composition]
        self._clusters = [c for c in self._clusters if id(c) not in to_remove]

    def reinitialize(self) -> int:
        """Assign dense ids and moment ids, return the number of degrees of freedom."""
        self._by_id = {}
        self._moment_owner = {}
        for index, cluster in enumerate(self._clusters):
            cluster.id = index + 1
            self._by_id[cluster.id] = cluster
        next_id = len(self._clusters) + 1
        for super_cluster in self.supers:
            for axis in super_cluster.axes:
                super_cluster.moment_ids[axis] = next_id
                self._moment_owner[next_id] = (super_cluster, axis)
                next_id += 1
        self._dof = next_id - 1
        logger.debug(f"Registry reinitialized: {len(self._clusters)} clusters, {self._dof} degrees of freedom")
        return self._dof

    @property
    def dof(self) -> int:
        return self._dof

    @property
    def supers(self) -> List[SuperCluster]:
        return [c for c in self._clusters if c.is_super]

    @property
    def raw(self) -> List[Cluster]:
        return [c for c in self._clusters if not c.is_super]

    def get(self, species: Union[Species, str], size: int) -> Optional[Cluster]:
        """Get a single-species cluster, None if absent."""
        return self._by_composition.get(Composition({species: size}))

    def get_compound(self, composition: Union[Composition, Dict[str, int]]) -> Optional[Cluster]:
        """Get a raw cluster by composition, None if absent."""
        if not isinstance(composition, Composition):
            composition = Composition(composition)
        return self._by_composition.get(composition)

    def get_super(self, composition: Union[Composition, Dict[str, int]]) -> Optional[SuperCluster]:
        """Get the super cluster owning a grouped composition, None if absent."""
        if not isinstance(composition, Composition):
            composition = Composition(composition)
        return self._super_by_member.get(composition)

    def get_by_id(self, cluster_id: int) -> Optional[AnyCluster]:
        return self._by_id.get(cluster_id)

    def get_moment_owner(self, moment_id: int) -> Optional[Tuple[SuperCluster, Species]]:
        return self._moment_owner.get(moment_id)

    def get_all(self) -> List[AnyCluster]:
        return list(self._clusters)

    def get_all_by_shape(self, shape: str) -> List[AnyCluster]:
        return [c for c in self._clusters if c.shape == shape]

    def get_labels(self) -> List[str]:
        return [c.label for c in self._clusters]

    def get_index_by_label(self, label: str) -> Optional[int]:
        """Zero based index of a cluster by label, None if absent."""
        for index, cluster in enumerate(self._clusters):
            if cluster.label == label:
                return index
        return None

    def __len__(self) -> int:
        return len(self._clusters)

    def __iter__(self) -> Iterator[AnyCluster]:
        return iter(self._clusters)

    def __getitem__(self, index: int) -> AnyCluster:
        return self._clusters[index]
