"""
Material presets: lattice constants, atomic volume and reaction radius models.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..utils.constants import (
    PI,
    TUNGSTEN_LATTICE_CONSTANT,
    UO2_LATTICE_CONSTANT,
    XENON_DENSITY,
    parse_quantity,
)
from .species import Composition, Species


@dataclass
class Material:
    """Host material of the defect network.

    Parameters
    ----------
    name : str
        Preset name ("W" or "UO2").
    lattice_constant : float
        Lattice constant in nm.
    atomic_volume : float
        Atomic volume used in the detailed balance, in nm^3.
    xenon_density : float
        Xenon number density in bubbles, in nm^-3 (UO2 only).
    """

    name: str
    lattice_constant: float  # nm
    atomic_volume: float  # nm^3
    xenon_density: float = XENON_DENSITY  # nm^-3

    def __post_init__(self):
        if self.lattice_constant <= 0:
            raise ValueError(f"Lattice constant must be positive, got {self.lattice_constant}")
        if self.atomic_volume <= 0:
            raise ValueError(f"Atomic volume must be positive, got {self.atomic_volume}")

    @classmethod
    def from_name(cls, name: str, atomic_volume: Optional[float] = None) -> "Material":
        """Create a material from a preset name, optionally overriding the atomic volume."""
        presets = {
            # bcc tungsten, two atoms per unit cell
            "W": (TUNGSTEN_LATTICE_CONSTANT, 0.5 * TUNGSTEN_LATTICE_CONSTANT**3),
            "UO2": (UO2_LATTICE_CONSTANT, 0.5 * UO2_LATTICE_CONSTANT**3),
        }
        if name not in presets:
            raise ValueError(f"Unknown material {name}. Available materials: {list(presets)}")
        lattice_constant, default_volume = presets[name]
        return cls(
            name=name,
            lattice_constant=lattice_constant,
            atomic_volume=atomic_volume if atomic_volume is not None else default_volume,
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Material":
        """Create a material from a configuration."""
        atomic_volume = config.get("atomic_volume")
        if atomic_volume is not None:
            atomic_volume = parse_quantity(atomic_volume, default_unit="nm^3", target_unit="nm^3")
        return cls.from_name(config.get("material", "W"), atomic_volume=atomic_volume)

    def to_config(self) -> Dict[str, Any]:
        return {
            "material": self.name,
            "atomic_volume": f"{self.atomic_volume} nm^3",
        }

    def reaction_radius(self, composition: Composition) -> float:
        """Capture radius of a cluster in nm.

        Vacancy-containing clusters use the vacancy count, interstitial clusters the
        interstitial count, pure helium the helium count and xenon clusters the xenon count.
        """
        a = self.lattice_constant
        if (n_v := composition[Species.V]) > 0:
            return self._point_defect_radius(n_v)
        if (n_i := composition[Species.I]) > 0:
            return self._point_defect_radius(n_i)
        if (n_xe := composition[Species.XE]) > 0:
            return (3.0 * n_xe / (4.0 * PI * self.xenon_density)) ** (1.0 / 3.0)
        if (n_he := composition[Species.HE]) > 0:
            factor = 3.0 / (4.0 * PI) * 0.1 * a**3
            return 0.3 + (factor * n_he) ** (1.0 / 3.0) - factor ** (1.0 / 3.0)
        raise ValueError("Cannot compute the reaction radius of an empty composition")

    def _point_defect_radius(self, size: int) -> float:
        a = self.lattice_constant
        factor = 3.0 / (8.0 * PI) * a**3
        return math.sqrt(3.0) / 4.0 * a + (factor * size) ** (1.0 / 3.0) - factor ** (1.0 / 3.0)
