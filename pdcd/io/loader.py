"""
Cluster sources: the text descriptor format and the procedural generator.
"""

import io
import logging
import math
import time
from pathlib import Path
from typing import Iterator, List, TextIO, Union

from ..core.clusters import ClusterDescriptor
from ..core.energetics import formation_energy
from ..core.species import Composition, Species

logger = logging.getLogger(__name__)

# Monomer and small cluster mobility in tungsten, indexed by size - 1
I_DIFFUSION_FACTORS = [1.0e11]  # nm^2/s
I_MIGRATION_ENERGIES = [0.34]  # eV
HE_DIFFUSION_FACTORS = [1.0e11, 5.0e10, 3.3e10]
HE_MIGRATION_ENERGIES = [0.06, 0.06, 0.06]
V_DIFFUSION_FACTORS = [1.0e11, 5.0e10, 3.3e10, 2.5e10]
V_MIGRATION_ENERGIES = [0.67, 0.62, 0.37, 0.48]
# Only the xenon monomer moves in UO2
XE_DIFFUSION_FACTORS = [1.0e11]
XE_MIGRATION_ENERGIES = [1.0]

# Pure vacancy clusters are generated up to this size
MAX_PURE_V = 10


def _parse_value(token: str, line_number: int) -> float:
    if token.lower() == "infinite":
        return math.inf
    try:
        return float(token)
    except ValueError as e:
        raise ValueError(f"Line {line_number}: cannot parse '{token}' as a number") from e


def _parse_count(token: str, line_number: int) -> int:
    try:
        count = int(token)
    except ValueError as e:
        raise ValueError(f"Line {line_number}: cannot parse '{token}' as a count") from e
    if count < 0:
        raise ValueError(f"Line {line_number}: negative count {count}")
    return count


def read_descriptors(stream: TextIO) -> Iterator[ClusterDescriptor]:
    """Yield descriptors from lines of ``numHe numV numI Ef Em D0``."""
    for line_number, line in enumerate(stream, start=1):
        content = line.split("#", 1)[0].strip()
        if not content:
            continue
        fields = content.split()
        if len(fields) < 6:
            raise ValueError(f"Line {line_number}: expected 6 fields, got {len(fields)}")
        num_he, num_v, num_i = (_parse_count(token, line_number) for token in fields[:3])
        composition = Composition({Species.HE: num_he, Species.V: num_v, Species.I: num_i})
        if composition.size == 0:
            raise ValueError(f"Line {line_number}: empty composition")
        energy, migration, diffusion = (_parse_value(token, line_number) for token in fields[3:6])
        if diffusion < 0:
            raise ValueError(f"Line {line_number}: negative diffusion factor {diffusion}")
        yield ClusterDescriptor(composition, energy, migration, diffusion)


def load_descriptors(source: Union[str, Path, TextIO]) -> List[ClusterDescriptor]:
    """Load every descriptor of a file (path) or an open text stream."""
    start_time = time.time()
    if isinstance(source, (str, Path)):
        with open(source, "r") as f:
            descriptors = list(read_descriptors(f))
    else:
        descriptors = list(read_descriptors(source))
    logger.info(f"Loaded {len(descriptors)} cluster descriptors in {time.time() - start_time:.3f} seconds")
    return descriptors


def loads_descriptors(text: str) -> List[ClusterDescriptor]:
    """Load descriptors from a string."""
    return load_descriptors(io.StringIO(text))


class ClusterGenerator:
    """
    Procedural cluster source.

    Parameters
    ----------
    max_he : int
        Largest helium count, for pure helium and mixed He-V clusters.
    max_v : int
        Largest vacancy count.
    max_i : int
        Largest interstitial cluster.
    max_xe : int
        Largest xenon cluster (UO2 networks).
    max_hei : int
        Largest total size of the mixed helium-interstitial clusters, 0 for none.

    Formation energies come from the energetics tables; only the small clusters listed in the
    mobility tables diffuse.
    """

    def __init__(self, max_he: int = 0, max_v: int = 0, max_i: int = 0, max_xe: int = 0, max_hei: int = 0):
        bounds = (("max_he", max_he), ("max_v", max_v), ("max_i", max_i), ("max_xe", max_xe), ("max_hei", max_hei))
        for name, value in bounds:
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        self.max_he = max_he
        self.max_v = max_v
        self.max_i = max_i
        self.max_xe = max_xe
        self.max_hei = max_hei

    @classmethod
    def from_config(cls, config) -> "ClusterGenerator":
        return cls(
            max_he=config.get("max_he", 0),
            max_v=config.get("max_v", 0),
            max_i=config.get("max_i", 0),
            max_xe=config.get("max_xe", 0),
            max_hei=config.get("max_hei", 0),
        )

    def to_config(self):
        return {
            "type": "generate",
            "max_he": self.max_he,
            "max_v": self.max_v,
            "max_i": self.max_i,
            "max_xe": self.max_xe,
            "max_hei": self.max_hei,
        }

    @property
    def max_sizes(self):
        return {"He": self.max_he, "V": self.max_v, "I": self.max_i, "Xe": self.max_xe}

    @staticmethod
    def _descriptor(composition: Composition, diffusion_factors: List[float], migration_energies: List[float], size: int):
        if size <= len(diffusion_factors):
            diffusion, migration = diffusion_factors[size - 1], migration_energies[size - 1]
        else:
            diffusion, migration = 0.0, math.inf
        return ClusterDescriptor(composition, formation_energy(composition), migration, diffusion)

    def generate(self) -> List[ClusterDescriptor]:
        """Interstitials, helium, vacancies each followed by their He-V clusters, He-I, then xenon."""
        descriptors = []
        for size in range(1, self.max_i + 1):
            composition = Composition({Species.I: size})
            descriptors.append(self._descriptor(composition, I_DIFFUSION_FACTORS, I_MIGRATION_ENERGIES, size))
        for size in range(1, self.max_he + 1):
            composition = Composition({Species.HE: size})
            descriptors.append(self._descriptor(composition, HE_DIFFUSION_FACTORS, HE_MIGRATION_ENERGIES, size))
        for num_v in range(1, self.max_v + 1):
            if num_v <= MAX_PURE_V:
                composition = Composition({Species.V: num_v})
                descriptors.append(self._descriptor(composition, V_DIFFUSION_FACTORS, V_MIGRATION_ENERGIES, num_v))
            for num_he in range(1, self.max_he + 1):
                # mixed clusters are immobile
                composition = Composition({Species.HE: num_he, Species.V: num_v})
                descriptors.append(ClusterDescriptor(composition, formation_energy(composition), math.inf, 0.0))
        for num_i in range(1, self.max_i + 1):
            for num_he in range(1, min(self.max_he, self.max_hei - num_i) + 1):
                composition = Composition({Species.HE: num_he, Species.I: num_i})
                descriptors.append(ClusterDescriptor(composition, formation_energy(composition), math.inf, 0.0))
        for size in range(1, self.max_xe + 1):
            composition = Composition({Species.XE: size})
            descriptors.append(self._descriptor(composition, XE_DIFFUSION_FACTORS, XE_MIGRATION_ENERGIES, size))
        logger.info(f"Generated {len(descriptors)} cluster descriptors")
        return descriptors

    def __iter__(self) -> Iterator[ClusterDescriptor]:
        return iter(self.generate())
