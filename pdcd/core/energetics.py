"""
Cluster energetics: formation energy tables, Legendre fits and binding energies.
"""

import logging
import math
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

import numpy as np
from numpy.polynomial import legendre

from .species import Composition, Species

logger = logging.getLogger(__name__)

# Coefficients of the 2D He-V formation energy fit, V <= 27
HEV_FIT_LOW_V = np.array(
    [
        [253.35, 435.36, 336.50, 198.92, 95.154, 21.544],
        [493.29, 1061.3, 1023.9, 662.92, 294.24, 66.962],
        [410.40, 994.89, 1044.6, 689.41, 286.52, 60.712],
        [152.99, 353.16, 356.10, 225.75, 87.077, 15.640],
    ]
)
# Coefficients of the 2D He-V formation energy fit, V > 27
HEV_FIT_HIGH_V = np.array(
    [
        [-847.90, -3346.9, -4510.3, -3094.7, -971.18, -83.770],
        [-1589.3, -4894.6, -6001.8, -4057.5, -1376.4, -161.91],
        [834.91, 1981.8, 1885.7, 1027.1, 296.69, 29.902],
        [1547.2, 3532.3, 3383.6, 1969.2, 695.17, 119.23],
    ]
)
# Exact He_xV_1 formation energies in eV, indexed by the number of helium atoms
HEV1_FORMATION_ENERGIES = [
    5.14166, 8.20919, 11.5304, 14.8829, 18.6971, 22.2847, 26.3631,
    30.1049, 34.0081, 38.2069, 42.4217, 46.7378, 51.1551, 55.6738,
]
# Exact He_xV_2 formation energies in eV, indexed by the number of helium atoms
HEV2_FORMATION_ENERGIES = [
    7.10098, 8.39913, 9.41133, 11.8748, 14.8296, 17.7259, 20.7747, 23.7993, 26.7984,
    30.0626, 33.0385, 36.5173, 39.9406, 43.48, 46.8537, 50.4484, 54.0879, 57.7939,
]

# Small-size formation energies in eV
HE_FORMATION_ENERGIES = [6.15, 11.44, 16.35, 21.0, 26.1, 30.24, 34.93, 38.80]
V_FORMATION_ENERGIES = [3.6, 7.25]
I_FORMATION_ENERGIES = [10.0, 18.5, 27.0, 35.0, 42.5, 48.0]
XE_FORMATION_ENERGY_SCALE = 7.0


def hev_formation_energy(num_he: int, num_v: int) -> float:
    """Formation energy of a He_xV_y cluster in eV.

    Uses the exact tables for one and two vacancies and the Legendre fit for larger
    vacancy numbers. Returns -inf outside the valid range.
    """
    if num_v > 2:
        # He/V ratio mapped onto [-1, 1]
        x = 2.0 * ((num_he / num_v) / 9.0) - 1.0
        if num_v <= 27:
            y = 2.0 * ((num_v - 1.0) / 26.0) - 1.0
            fit = HEV_FIT_LOW_V
        else:
            y = 2.0 * ((num_v - 1.0) / 451.0) - 1.0
            fit = HEV_FIT_HIGH_V
        coefficients = [legendre.legval(x, row) for row in fit]
        return float(legendre.legval(y, coefficients))
    if num_v == 1 and 0 <= num_he < len(HEV1_FORMATION_ENERGIES):
        return HEV1_FORMATION_ENERGIES[num_he]
    if num_v == 2 and 0 <= num_he < len(HEV2_FORMATION_ENERGIES):
        return HEV2_FORMATION_ENERGIES[num_he]
    return -math.inf


def _from_table(table: List[float], size: int) -> Optional[float]:
    if 1 <= size <= len(table):
        return table[size - 1]
    return None


def formation_energy(composition: Composition) -> float:
    """Default formation energy of a composition in eV.

    Pure species come from the small-size tables, vacancy clusters beyond the table and
    mixed helium-vacancy clusters from the He-V fit. Anything else is +inf, which disables
    dissociation of the reactions it takes part in.
    """
    shape = composition.shape
    if shape == "He":
        value = _from_table(HE_FORMATION_ENERGIES, composition[Species.HE])
    elif shape == "I":
        value = _from_table(I_FORMATION_ENERGIES, composition[Species.I])
    elif shape == "V":
        value = _from_table(V_FORMATION_ENERGIES, composition[Species.V])
        if value is None:
            value = hev_formation_energy(0, composition[Species.V])
    elif shape == "HeV":
        value = hev_formation_energy(composition[Species.HE], composition[Species.V])
    elif shape == "Xe":
        # capillarity scaling
        value = XE_FORMATION_ENERGY_SCALE * composition[Species.XE] ** (2.0 / 3.0)
    else:
        value = None
    if value is None or not math.isfinite(value):
        logger.debug(f"No formation energy available for {composition}, using +inf")
        return math.inf
    return value


# Composition and formation energy of a reaction participant
EnergyTerm = namedtuple("EnergyTerm", ["composition", "formation_energy"])


class BindingEnergyModel(Protocol):
    """Binding energy of a product cluster with respect to two fragments."""

    def binding_energy(self, first: EnergyTerm, second: EnergyTerm, product: EnergyTerm) -> float: ...


@dataclass
class FormationEnergyDifference:
    """Eb = Ef(A) + Ef(B) - Ef(C), +inf if any energy is not finite."""

    def binding_energy(self, first: EnergyTerm, second: EnergyTerm, product: EnergyTerm) -> float:
        energies = (first.formation_energy, second.formation_energy, product.formation_energy)
        if not all(math.isfinite(e) for e in energies):
            return math.inf
        return energies[0] + energies[1] - energies[2]


@dataclass
class TabulatedBindingEnergies:
    """Binding energies tabulated by (product label, emitted fragment label).

    Pairs that are not tabulated fall back to ``fallback``.
    """

    energies: Dict[Tuple[str, str], float] = field(default_factory=dict)
    fallback: BindingEnergyModel = field(default_factory=FormationEnergyDifference)

    def binding_energy(self, first: EnergyTerm, second: EnergyTerm, product: EnergyTerm) -> float:
        for fragment in (first, second):
            key = (product.composition.label, fragment.composition.label)
            if key in self.energies:
                return self.energies[key]
        return self.fallback.binding_energy(first, second, product)
