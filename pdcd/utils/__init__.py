"""
Utility modules for PDCD.
"""

from .constants import (
    BOLTZMANN_CONSTANT_EV,
    PI,
    TUNGSTEN_LATTICE_CONSTANT,
    UO2_LATTICE_CONSTANT,
    XENON_DENSITY,
    format_quantity,
    parse_quantity,
    pint,
    ureg,
)

__all__ = [
    "BOLTZMANN_CONSTANT_EV",
    "PI",
    "TUNGSTEN_LATTICE_CONSTANT",
    "UO2_LATTICE_CONSTANT",
    "XENON_DENSITY",
    "format_quantity",
    "parse_quantity",
    "ureg",
    "pint",
]
