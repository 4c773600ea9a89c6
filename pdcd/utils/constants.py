# %%
"""
Physical constants used in cluster dynamics calculations.
"""

import pint
from scipy.constants import physical_constants, pi

# Create a centralized unit registry
ureg = pint.UnitRegistry()
ureg.setup_matplotlib(True)

# %%
# Fundamental constants
BOLTZMANN_CONSTANT_EV = physical_constants["Boltzmann constant in eV/K"][0]  # eV/K
PI = pi

# Lattice constants
TUNGSTEN_LATTICE_CONSTANT = 0.31700  # nm
UO2_LATTICE_CONSTANT = 0.547  # nm
XENON_DENSITY = 8.0  # nm^-3


# Unit parsing and conversion utilities
def parse_quantity(value, default_unit=None, target_unit=None) -> float:
    """
    Parse a quantity that can be a number or a string with units.

    Parameters
    ----------
    value : Union[float, int, str]
        The value to parse. If string, should include units (e.g., "1000 K").
        If number, it is interpreted in ``default_unit`` when given.
    default_unit : str, optional
        Default unit to assume if value is a number. If None, no conversion.
    target_unit : str, optional
        Target unit to convert to. If None, converts to SI base units.

    Returns
    -------
    float
        The value in the target unit (or SI base units if target_unit is None).

    Examples
    --------
    >>> parse_quantity("1000 K", target_unit="K")
    1000.0
    >>> parse_quantity(0.0159, "nm^3", "nm^3")
    0.0159
    >>> parse_quantity("1.3 eV", target_unit="eV")
    1.3
    """
    if isinstance(value, str):
        # Infinite energies are written out in the data files
        if value.strip().lower() in ("inf", "infinity", "infinite"):
            return float("inf")
        try:
            # bare numbers in a string
            return parse_quantity(float(value), default_unit, target_unit)
        except ValueError:
            quantity = ureg(value)
        if target_unit:
            return quantity.to(target_unit).magnitude
        else:
            return quantity.to_base_units().magnitude
    elif isinstance(value, (int, float)):
        # Number - apply default unit if any
        if default_unit:
            quantity = value * ureg(default_unit)
            if target_unit:
                return quantity.to(target_unit).magnitude
            else:
                return quantity.to_base_units().magnitude
        else:
            return float(value)
    else:
        raise ValueError(f"Cannot parse quantity: {value}")


def format_quantity(value, unit, precision=3) -> str:
    """
    Format a quantity with units for display.

    Parameters
    ----------
    value : float
        The value expressed in ``unit``
    unit : str
        The unit to display
    precision : int, optional
        Number of decimal places

    Returns
    -------
    str
        Formatted string with value and unit
    """
    quantity = value * ureg(unit)
    return f"{quantity:~P.{precision}f}"
