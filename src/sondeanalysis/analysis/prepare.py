"""Convert a Profile into numpy arrays and interpolate rows out of it.

Engines never walk DataRow objects in their inner loops. They ask for an
Environment (the levels with a usable pressure and temperature) or for a
column with NaN where a value is missing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import metpy.calc as mpcalc
import numpy as np
from metpy.units import units

from sondeanalysis.analysis import thermo
from sondeanalysis.errors import MissingProfileDataError
from sondeanalysis.models import DataRow, Profile, WindUV

logger = logging.getLogger(__name__)

MIN_LEVELS = 2

_SCALAR_FIELDS = (
    "height_m",
    "temperature_c",
    "dewpoint_c",
    "omega_pa_s",
    "cloud_fraction_pct",
)


@dataclass
class Environment:
    """Levels with pressure and temperature, ordered surface first.

    dewpoint holds NaN where the row had none. Heights are filled in
    hypsometrically where the row had none.
    """

    pressure: np.ndarray  # hPa, decreasing
    height: np.ndarray  # m ASL
    temperature: np.ndarray  # degC
    dewpoint: np.ndarray  # degC, may contain NaN
    virtual_temperature: np.ndarray  # degC
    surface_height: float  # m ASL

    def __len__(self) -> int:
        return len(self.pressure)

    def interp(self, pressure_hpa: float, values: np.ndarray) -> float:
        """Interpolate one of the arrays linearly in ln p."""
        x = -np.log(self.pressure)
        return float(np.interp(-math.log(pressure_hpa), x, values))


def column(profile: Profile, field: str) -> np.ndarray:
    """One DataRow field as a float array with NaN for missing values."""
    return np.array(
        [np.nan if getattr(r, field) is None else getattr(r, field) for r in profile.rows],
        dtype=float,
    )


def prepare_environment(profile: Profile) -> Environment:
    """Collect the levels that have both pressure and temperature.

    Raises MissingProfileDataError when fewer than MIN_LEVELS such levels exist.
    """
    valid = [
        r for r in profile.rows if r.pressure_hpa is not None and r.temperature_c is not None
    ]
    if len(valid) < MIN_LEVELS:
        raise MissingProfileDataError(
            f"Only {len(valid)} levels with pressure and temperature, need {MIN_LEVELS}"
        )

    pressure = np.array([r.pressure_hpa for r in valid], dtype=float)
    temperature = np.array([r.temperature_c for r in valid], dtype=float)
    dewpoint = np.array(
        [np.nan if r.dewpoint_c is None else r.dewpoint_c for r in valid], dtype=float
    )
    virtual = temperature.copy()
    moist = ~np.isnan(dewpoint)
    if moist.any():
        virtual[moist] = thermo.virtual_temperature(temperature[moist], dewpoint[moist], pressure[moist])
    height = _fill_heights(
        pressure,
        virtual,
        np.array([np.nan if r.height_m is None else r.height_m for r in valid], dtype=float),
        profile.surface_height_m,
    )
    surface_height = profile.surface_height_m
    if surface_height is None:
        surface_height = float(height[0])

    return Environment(
        pressure=pressure,
        height=height,
        temperature=temperature,
        dewpoint=dewpoint,
        virtual_temperature=virtual,
        surface_height=surface_height,
    )


def _fill_heights(
    pressure: np.ndarray,
    virtual_t: np.ndarray,
    height: np.ndarray,
    surface_height: Optional[float],
) -> np.ndarray:
    """Fill NaN heights by hypsometric integration anchored on known heights."""
    if not np.isnan(height).any():
        return height

    # Relative heights from the hypsometric equation
    rel = np.zeros_like(pressure)
    for i in range(1, len(pressure)):
        mean_tv = 0.5 * (virtual_t[i - 1] + virtual_t[i])
        rel[i] = rel[i - 1] + thermo.hypsometric_thickness_m(pressure[i - 1], pressure[i], mean_tv)

    known = np.flatnonzero(~np.isnan(height))
    filled = height.copy()
    if len(known) == 0:
        base = surface_height if surface_height is not None else 0.0
        return rel + base

    for i in np.flatnonzero(np.isnan(height)):
        # Anchor on the closest known level
        j = known[np.argmin(np.abs(known - i))]
        filled[i] = height[j] + (rel[i] - rel[j])
    return filled


def _interp_ln_p(
    pressures: np.ndarray, values: np.ndarray, target_hpa: float,
) -> Optional[float]:
    """Interpolate values (aligned with decreasing pressures) at target_hpa.

    Returns None outside the range of valid data.
    """
    mask = ~(np.isnan(pressures) | np.isnan(values))
    if not mask.any():
        return None
    p = pressures[mask]
    v = values[mask]
    if target_hpa > p[0] or target_hpa < p[-1]:
        return None
    if len(p) == 1:
        return float(v[0])
    return float(np.interp(-math.log(target_hpa), -np.log(p), v))


def linear_interpolate(profile: Profile, pressure_hpa: float) -> DataRow:
    """Build a row at pressure_hpa, interpolating each field in ln p.

    Fields that cannot be bracketed by valid data come back as None. Wind is
    interpolated as u/v components.
    """
    pressures = column(profile, "pressure_hpa")
    values = {
        name: _interp_ln_p(pressures, column(profile, name), pressure_hpa)
        for name in _SCALAR_FIELDS
    }

    u = np.full(len(profile.rows), np.nan)
    v = np.full(len(profile.rows), np.nan)
    for i, row in enumerate(profile.rows):
        wind = row.wind_uv()
        if wind is not None:
            u[i], v[i] = wind.u_ms, wind.v_ms
    u_val = _interp_ln_p(pressures, u, pressure_hpa)
    v_val = _interp_ln_p(pressures, v, pressure_hpa)

    speed = direction = None
    if u_val is not None and v_val is not None:
        wind = WindUV(u_ms=u_val, v_ms=v_val)
        speed, direction = wind.speed_kt, wind.direction_deg

    return DataRow(
        pressure_hpa=pressure_hpa,
        wind_speed_kt=speed,
        wind_direction_deg=direction,
        **values,
    )


def pressure_at_height(profile: Profile, height_m: float) -> float:
    """Pressure at height_m (ASL), interpolating ln p linearly in height."""
    pressures = column(profile, "pressure_hpa")
    heights = column(profile, "height_m")
    mask = ~(np.isnan(pressures) | np.isnan(heights))
    if mask.sum() < MIN_LEVELS:
        raise MissingProfileDataError("Not enough levels with both pressure and height")
    p = pressures[mask]
    z = heights[mask]
    if height_m < z[0] or height_m > z[-1]:
        raise MissingProfileDataError(
            f"Height {height_m:.0f} m is outside the profile ({z[0]:.0f}-{z[-1]:.0f} m)"
        )
    return float(math.exp(np.interp(height_m, z, np.log(p))))


def interpolate_at_height(profile: Profile, height_m: float) -> DataRow:
    """Build a row at height_m (ASL)."""
    row = linear_interpolate(profile, pressure_at_height(profile, height_m))
    return row.model_copy(update={"height_m": height_m})


def wind_arrays(profile: Profile) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pressure, u and v (m/s) for rows with pressure and wind.

    Components come from MetPy so the sign convention matches its hodograph
    tools.
    """
    rows = [
        r for r in profile.rows
        if r.pressure_hpa is not None
        and r.wind_speed_kt is not None
        and r.wind_direction_deg is not None
    ]
    if len(rows) < MIN_LEVELS:
        raise MissingProfileDataError(f"Only {len(rows)} levels with wind, need {MIN_LEVELS}")

    speed = np.array([r.wind_speed_kt for r in rows]) * units.knot
    direction = np.array([r.wind_direction_deg for r in rows]) * units.degree
    u, v = mpcalc.wind_components(speed, direction)
    return (
        np.array([r.pressure_hpa for r in rows], dtype=float),
        np.asarray(u.to("m/s").magnitude, dtype=float),
        np.asarray(v.to("m/s").magnitude, dtype=float),
    )
