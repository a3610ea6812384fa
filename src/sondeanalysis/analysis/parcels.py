"""Parcel selection: surface, mixed-layer, most-unstable, convective, layer-average."""

from __future__ import annotations

import logging

import numpy as np

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.ascent import lift_in_environment
from sondeanalysis.analysis.prepare import prepare_environment
from sondeanalysis.errors import AnalysisError, NoDataError
from sondeanalysis.models import Layer, Parcel, ParcelAscentAnalysis, Profile

logger = logging.getLogger(__name__)

MIXED_LAYER_DEPTH_HPA = 100.0
MOST_UNSTABLE_DEPTH_HPA = 300.0

# Convective temperature search
CONVECTIVE_MAX_HEATING_C = 40.0
CONVECTIVE_COARSE_STEP_C = 1.0
CONVECTIVE_TOLERANCE_C = 0.05
CONVECTIVE_MAX_CIN_JKG = 1.0


def _moist_rows(profile: Profile) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pressure, temperature and dew point for rows that have all three."""
    rows = [
        r for r in profile.rows
        if r.pressure_hpa is not None and r.temperature_c is not None and r.dewpoint_c is not None
    ]
    return (
        np.array([r.pressure_hpa for r in rows], dtype=float),
        np.array([r.temperature_c for r in rows], dtype=float),
        np.array([r.dewpoint_c for r in rows], dtype=float),
    )


def surface_parcel(profile: Profile) -> Parcel:
    """Parcel from the lowest row with pressure, temperature and dew point."""
    for row in profile.bottom_up():
        if row.pressure_hpa is not None and row.temperature_c is not None and row.dewpoint_c is not None:
            return Parcel(
                pressure_hpa=row.pressure_hpa,
                temperature_c=row.temperature_c,
                dewpoint_c=row.dewpoint_c,
            )
    raise NoDataError("No row with pressure, temperature and dew point")


def _layer_mean_parcel(profile: Profile, bottom_hpa: float, top_hpa: float) -> Parcel:
    """Pressure-weighted mean theta and mixing ratio between two pressures.

    The result sits at bottom_hpa. Layer ends are interpolated in ln p when
    they fall between rows.
    """
    p, t, td = _moist_rows(profile)
    if len(p) == 0 or bottom_hpa > p[0] or top_hpa < p[-1]:
        raise NoDataError(
            f"No moisture data spanning {bottom_hpa:.0f}-{top_hpa:.0f} hPa"
        )

    if bottom_hpa == top_hpa:
        x = -np.log(p)
        x0 = -np.log(bottom_hpa)
        return Parcel(
            pressure_hpa=bottom_hpa,
            temperature_c=float(np.interp(x0, x, t)),
            dewpoint_c=float(np.interp(x0, x, td)),
        )

    try:
        temperature, dewpoint = thermo.mixed_parcel(p, t, td, bottom_hpa, bottom_hpa - top_hpa)
    except ValueError as exc:
        raise NoDataError(f"Cannot mix {bottom_hpa:.0f}-{top_hpa:.0f} hPa: {exc}") from exc
    return Parcel(pressure_hpa=bottom_hpa, temperature_c=temperature, dewpoint_c=dewpoint)


def mixed_layer_parcel(profile: Profile, depth_hpa: float = MIXED_LAYER_DEPTH_HPA) -> Parcel:
    """Mean parcel of the lowest depth_hpa, placed at the surface pressure.

    The surface is the lowest row with a pressure. Raises NoDataError when that
    row has no temperature or dew point.
    """
    surface = next((r for r in profile.bottom_up() if r.pressure_hpa is not None), None)
    if surface is None or surface.temperature_c is None or surface.dewpoint_c is None:
        raise NoDataError("No surface temperature and dew point for a mixed-layer parcel")
    return _layer_mean_parcel(profile, surface.pressure_hpa, surface.pressure_hpa - depth_hpa)


def average_parcel(profile: Profile, layer: Layer) -> Parcel:
    """Mean parcel over an arbitrary layer, placed at the layer bottom."""
    bottom = layer.bottom.pressure_hpa
    top = layer.top.pressure_hpa
    if bottom is None or top is None:
        raise NoDataError("Layer has no pressure bounds")
    return _layer_mean_parcel(profile, bottom, top)


def most_unstable_parcel(
    profile: Profile, depth_hpa: float = MOST_UNSTABLE_DEPTH_HPA,
) -> Parcel:
    """Level in the lowest depth_hpa with the highest equivalent potential temperature."""
    p, t, td = _moist_rows(profile)
    if len(p) == 0:
        raise NoDataError(f"No candidate parcels in the lowest {depth_hpa:.0f} hPa")
    if len(p) == 1:
        idx = 0
    else:
        try:
            idx = thermo.most_unstable_level(p, t, td, depth_hpa)
        except ValueError as exc:
            raise NoDataError(f"Most-unstable search failed: {exc}") from exc
    return Parcel(pressure_hpa=float(p[idx]), temperature_c=float(t[idx]), dewpoint_c=float(td[idx]))


def _is_convective(ascent: ParcelAscentAnalysis) -> bool:
    return (
        ascent.cape_jkg is not None
        and ascent.cape_jkg > 0.0
        and ascent.cin_jkg is not None
        and abs(ascent.cin_jkg) < CONVECTIVE_MAX_CIN_JKG
    )


def robust_convective_parcel_ascent(profile: Profile) -> ParcelAscentAnalysis:
    """Ascent of the surface parcel heated to its convective temperature.

    Heats in coarse steps until the parcel rises freely (CAPE and no
    meaningful CIN), then bisects between the last failing and first passing
    heating.
    """
    env = prepare_environment(profile)
    start = surface_parcel(profile)

    def attempt(dt: float) -> ParcelAscentAnalysis | None:
        try:
            return lift_in_environment(start.heated(dt), env)
        except AnalysisError:
            logger.debug("Convective attempt at +%.2f C failed", dt, exc_info=True)
            return None

    first = attempt(0.0)
    if first is not None and _is_convective(first):
        return first

    low = 0.0
    high = None
    found: ParcelAscentAnalysis | None = None
    for dt in np.arange(CONVECTIVE_COARSE_STEP_C, CONVECTIVE_MAX_HEATING_C + 0.5, CONVECTIVE_COARSE_STEP_C):
        ascent = attempt(float(dt))
        if ascent is not None and _is_convective(ascent):
            high, found = float(dt), ascent
            break
        low = float(dt)
    if found is None:
        raise NoDataError(
            f"No convective temperature within +{CONVECTIVE_MAX_HEATING_C:.0f} C of the surface"
        )

    while high - low > CONVECTIVE_TOLERANCE_C:
        mid = 0.5 * (low + high)
        ascent = attempt(mid)
        if ascent is not None and _is_convective(ascent):
            high, found = mid, ascent
        else:
            low = mid
    return found
