"""MetPy-based thermodynamic computations for the parcel, fire and index engines.

All MetPy thermodynamic calls are isolated here. Callers pass plain floats or
numpy arrays (hPa, °C, kg/kg) and get plain numbers back: a float for a
scalar input, an array otherwise.
"""

from __future__ import annotations

import logging
import math

import metpy.calc as mpcalc
import metpy.constants as mpconst
import numpy as np
from metpy.units import units

logger = logging.getLogger(__name__)

RD = float(mpconst.Rd.m_as("J / kg / K"))
CP_D = float(mpconst.Cp_d.m_as("J / kg / K"))
G = float(mpconst.g.m_as("m / s^2"))
KAPPA = RD / CP_D

ZERO_C = 273.15


def _mag(quantity, unit: str):
    """Magnitude of a pint Quantity in unit, as a float or an array."""
    value = quantity.m_as(unit)
    if np.ndim(value) == 0:
        return float(value)
    return np.asarray(value, dtype=float)


def _hpa(pressure_hpa):
    return units.Quantity(np.asarray(pressure_hpa, dtype=float), "hPa")


def _kelvin(temperature_c):
    return units.Quantity(np.asarray(temperature_c, dtype=float) + ZERO_C, "K")


def _ratio(w):
    return units.Quantity(np.asarray(w, dtype=float), "kg/kg")


def vapor_pressure_hpa(temperature_c):
    """Saturation vapor pressure over liquid water (hPa)."""
    return _mag(mpcalc.saturation_vapor_pressure(_kelvin(temperature_c)), "hPa")


def mixing_ratio(dewpoint_c, pressure_hpa):
    """Mixing ratio (kg/kg) of air with the given dew point."""
    return _mag(mpcalc.saturation_mixing_ratio(_hpa(pressure_hpa), _kelvin(dewpoint_c)), "kg/kg")


def saturation_mixing_ratio(temperature_c, pressure_hpa):
    return mixing_ratio(temperature_c, pressure_hpa)


def specific_humidity(dewpoint_c, pressure_hpa):
    return _mag(
        mpcalc.specific_humidity_from_dewpoint(_hpa(pressure_hpa), _kelvin(dewpoint_c)), "kg/kg",
    )


def dewpoint_from_mixing_ratio(w, pressure_hpa):
    """Dew point (°C) of air holding w kg/kg of water vapor.

    Raises ValueError for a mixing ratio that is not positive.
    """
    if np.any(np.asarray(w) <= 0.0):
        raise ValueError("mixing ratio must be positive")
    e = mpcalc.vapor_pressure(_hpa(pressure_hpa), _ratio(w))
    return _mag(mpcalc.dewpoint(e), "degC")


def dewpoint_from_specific_humidity(q, pressure_hpa):
    w = mpcalc.mixing_ratio_from_specific_humidity(_ratio(q))
    return dewpoint_from_mixing_ratio(w.m_as("kg/kg"), pressure_hpa)


def potential_temperature(pressure_hpa, temperature_c):
    """Potential temperature (K)."""
    return _mag(mpcalc.potential_temperature(_hpa(pressure_hpa), _kelvin(temperature_c)), "K")


def virtual_temperature(temperature_c, dewpoint_c, pressure_hpa):
    """Virtual temperature (°C) of air with the given dew point."""
    return virtual_temperature_from_w(temperature_c, mixing_ratio(dewpoint_c, pressure_hpa))


def virtual_temperature_from_w(temperature_c, w):
    return _mag(mpcalc.virtual_temperature(_kelvin(temperature_c), _ratio(w)), "degC")


def saturated_virtual_temperature(temperature_c, pressure_hpa):
    """Virtual temperature (°C) of saturated air."""
    return virtual_temperature_from_w(temperature_c, saturation_mixing_ratio(temperature_c, pressure_hpa))


def equivalent_potential_temperature(pressure_hpa, temperature_c, dewpoint_c):
    """Equivalent potential temperature (K)."""
    return _mag(
        mpcalc.equivalent_potential_temperature(
            _hpa(pressure_hpa), _kelvin(temperature_c), _kelvin(dewpoint_c),
        ),
        "K",
    )


def wet_bulb_temperature(pressure_hpa, temperature_c, dewpoint_c):
    """Wet-bulb temperature (°C)."""
    return _mag(
        mpcalc.wet_bulb_temperature(_hpa(pressure_hpa), _kelvin(temperature_c), _kelvin(dewpoint_c)),
        "degC",
    )


def lcl(pressure_hpa: float, temperature_c: float, dewpoint_c: float) -> tuple[float, float]:
    """LCL pressure (hPa) and temperature (°C), solved iteratively by MetPy."""
    p_lcl, t_lcl = mpcalc.lcl(_hpa(pressure_hpa), _kelvin(temperature_c), _kelvin(dewpoint_c))
    return _mag(p_lcl, "hPa"), _mag(t_lcl, "degC")


def dry_lapse(pressure_hpa, temperature_c: float, reference_hpa: float) -> np.ndarray:
    """Temperatures (°C) along the dry adiabat through (reference_hpa, temperature_c)."""
    t = mpcalc.dry_lapse(_hpa(pressure_hpa), _kelvin(temperature_c), reference_pressure=_hpa(reference_hpa))
    return np.atleast_1d(_mag(t, "degC"))


def moist_lapse(pressure_hpa, temperature_c: float, reference_hpa: float) -> np.ndarray:
    """Temperatures (°C) along the pseudo-adiabat through (reference_hpa, temperature_c).

    Pressures may lie above or below the reference, in either order.
    """
    t = mpcalc.moist_lapse(_hpa(pressure_hpa), _kelvin(temperature_c), reference_pressure=_hpa(reference_hpa))
    return np.atleast_1d(_mag(t, "degC"))


def mixed_parcel(
    pressure_hpa: np.ndarray,
    temperature_c: np.ndarray,
    dewpoint_c: np.ndarray,
    bottom_hpa: float,
    depth_hpa: float,
) -> tuple[float, float]:
    """Temperature and dew point (°C) at bottom_hpa of the layer-mean parcel.

    MetPy averages theta and mixing ratio over the layer, weighting by
    pressure. Raises ValueError when the layer is outside the data.
    """
    _, t, td = mpcalc.mixed_parcel(
        _hpa(pressure_hpa),
        _kelvin(temperature_c),
        _kelvin(dewpoint_c),
        parcel_start_pressure=_hpa(bottom_hpa),
        bottom=_hpa(bottom_hpa),
        depth=_hpa(depth_hpa),
    )
    return _mag(t, "degC"), _mag(td, "degC")


def most_unstable_level(
    pressure_hpa: np.ndarray,
    temperature_c: np.ndarray,
    dewpoint_c: np.ndarray,
    depth_hpa: float,
) -> int:
    """Index of the level with the highest theta-e within depth_hpa of the bottom."""
    depth = min(depth_hpa, float(pressure_hpa[0] - pressure_hpa[-1]))
    *_, idx = mpcalc.most_unstable_parcel(
        _hpa(pressure_hpa), _kelvin(temperature_c), _kelvin(dewpoint_c), depth=_hpa(depth),
    )
    return int(idx)


def hypsometric_thickness_m(p_bottom: float, p_top: float, mean_tv_c: float) -> float:
    """Thickness (m) of the layer between two pressures."""
    return RD * (mean_tv_c + ZERO_C) / G * math.log(p_bottom / p_top)
