"""Scalar indices that depend on the profile alone.

Precipitable water goes through MetPy. The Haines variants and the
Hot-Dry-Windy index are simple lookups over a few levels.

References:
    Haines DA. A lower atmosphere severity index for wildland fires.
        National Weather Digest. 1988; 13(2):23-27.
    Srock AF, Charney JJ, Potter BE, Goodrick SL. The Hot-Dry-Windy Index: A
        New Fire Weather Index. Atmosphere. 2018; 9(7):279.
"""

from __future__ import annotations

import logging

import metpy.calc as mpcalc
import numpy as np
from metpy.units import units

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.prepare import linear_interpolate
from sondeanalysis.errors import MissingProfileDataError
from sondeanalysis.models import KT_TO_MS, Profile

logger = logging.getLogger(__name__)

# Station elevation (m) below which the low and mid Haines variants apply
HAINES_LOW_MAX_ELEVATION_M = 305.0
HAINES_MID_MAX_ELEVATION_M = 914.0

HDW_DEPTH_M = 500.0


def precipitable_water(profile: Profile) -> float:
    """Total column precipitable water (mm)."""
    rows = [r for r in profile.rows if r.pressure_hpa is not None and r.dewpoint_c is not None]
    if len(rows) < 2:
        raise MissingProfileDataError("Precipitable water needs at least two dew points")
    p = np.array([r.pressure_hpa for r in rows]) * units.hPa
    td = np.array([r.dewpoint_c for r in rows]) * units.degC
    pw = mpcalc.precipitable_water(p, td)
    return float(pw.to("mm").magnitude)


def _level(profile: Profile, pressure_hpa: float, need_dewpoint: bool = False) -> tuple[float, float | None]:
    """Temperature and dew point at a standard level, which must be above ground."""
    p_max = profile.max_pressure_hpa
    if p_max is None or pressure_hpa > p_max:
        raise MissingProfileDataError(f"{pressure_hpa:.0f} hPa is below ground")
    row = linear_interpolate(profile, pressure_hpa)
    if row.temperature_c is None or (need_dewpoint and row.dewpoint_c is None):
        raise MissingProfileDataError(f"No temperature or dew point at {pressure_hpa:.0f} hPa")
    return row.temperature_c, row.dewpoint_c


def _category(value: float, low_max: int, mid_max: int) -> int:
    if value <= low_max:
        return 1
    if value <= mid_max:
        return 2
    return 3


def _haines(
    profile: Profile,
    stability_levels: tuple[float, float],
    moisture_level: float,
    stability_limits: tuple[int, int],
    moisture_limits: tuple[int, int],
) -> int:
    t_lower, _ = _level(profile, stability_levels[0])
    t_upper, _ = _level(profile, stability_levels[1])
    t_moist, td_moist = _level(profile, moisture_level, need_dewpoint=True)
    stability = round(t_lower - t_upper)
    moisture = round(t_moist - td_moist)
    return _category(stability, *stability_limits) + _category(moisture, *moisture_limits)


def haines_low(profile: Profile) -> int:
    """Low-elevation Haines index: 950-850 hPa lapse, 850 hPa depression."""
    return _haines(profile, (950.0, 850.0), 850.0, (3, 7), (5, 9))


def haines_mid(profile: Profile) -> int:
    """Mid-elevation Haines index: 850-700 hPa lapse, 850 hPa depression."""
    return _haines(profile, (850.0, 700.0), 850.0, (5, 10), (5, 12))


def haines_high(profile: Profile) -> int:
    """High-elevation Haines index: 700-500 hPa lapse, 700 hPa depression."""
    return _haines(profile, (700.0, 500.0), 700.0, (17, 21), (14, 20))


def haines(profile: Profile) -> int:
    """Haines index for the variant that fits the station elevation."""
    elevation = profile.surface_height_m
    if elevation is None:
        raise MissingProfileDataError("Station elevation unknown, cannot pick a Haines variant")
    if elevation < HAINES_LOW_MAX_ELEVATION_M:
        return haines_low(profile)
    if elevation < HAINES_MID_MAX_ELEVATION_M:
        return haines_mid(profile)
    return haines_high(profile)


def hot_dry_windy(profile: Profile) -> float:
    """Hot-Dry-Windy index over the lowest 500 m.

    Each level's temperature and dew point are brought dry-adiabatically down
    to the surface pressure before taking the vapor pressure deficit. The
    result is max VPD (hPa) times max wind speed (m/s).
    """
    bottom = profile.surface_height_m
    if bottom is None:
        raise MissingProfileDataError("Profile has no surface height")
    top = bottom + HDW_DEPTH_M

    layer = [r for r in profile.rows if r.height_m is not None and bottom <= r.height_m <= top]
    bottom_p = next((r.pressure_hpa for r in layer if r.pressure_hpa is not None), None)
    if bottom_p is None:
        raise MissingProfileDataError("No pressure data in the lowest 500 m")

    vpds = []
    for r in layer:
        if r.pressure_hpa is None or r.temperature_c is None or r.dewpoint_c is None:
            continue
        t_sfc = float(thermo.dry_lapse(bottom_p, r.temperature_c, r.pressure_hpa)[0])
        q = thermo.specific_humidity(r.dewpoint_c, r.pressure_hpa)
        td_sfc = thermo.dewpoint_from_specific_humidity(q, bottom_p)
        vpds.append(thermo.vapor_pressure_hpa(t_sfc) - thermo.vapor_pressure_hpa(td_sfc))
    winds = [r.wind_speed_kt for r in layer if r.wind_speed_kt is not None]
    if not vpds or not winds:
        raise MissingProfileDataError("Hot-Dry-Windy needs temperature, dew point and wind below 500 m")

    return max(vpds) * max(winds) * KT_TO_MS
