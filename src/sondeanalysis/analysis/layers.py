"""Layer selection: height above ground, pressure bounds, effective inflow."""

from __future__ import annotations

import logging

from sondeanalysis.analysis.ascent import lift_in_environment
from sondeanalysis.analysis.prepare import (
    interpolate_at_height,
    linear_interpolate,
    prepare_environment,
)
from sondeanalysis.errors import AnalysisError, MissingProfileDataError
from sondeanalysis.models import Layer, Parcel, Profile

logger = logging.getLogger(__name__)

EFFECTIVE_CAPE_MIN_JKG = 100.0
EFFECTIVE_CIN_MIN_JKG = -250.0
EFFECTIVE_SEARCH_DEPTH_HPA = 400.0


def layer_agl(profile: Profile, depth_m: float) -> Layer:
    """From the surface row to the interpolated row depth_m above ground."""
    surface_height = profile.surface_height_m
    if surface_height is None:
        raise MissingProfileDataError("Profile has no surface height")
    bottom = next((r for r in profile.bottom_up() if r.pressure_hpa is not None), None)
    if bottom is None:
        raise MissingProfileDataError("Profile has no pressure data")
    top = interpolate_at_height(profile, surface_height + depth_m)
    return Layer(bottom=bottom, top=top)


def pressure_layer(profile: Profile, bottom_hpa: float, top_hpa: float) -> Layer:
    """Layer between two pressures, both ends interpolated."""
    p_max = profile.max_pressure_hpa
    pressures = [r.pressure_hpa for r in profile.rows if r.pressure_hpa is not None]
    if p_max is None or not pressures or bottom_hpa > p_max or top_hpa < pressures[-1]:
        raise MissingProfileDataError(
            f"Profile does not span {bottom_hpa:.0f}-{top_hpa:.0f} hPa"
        )
    return Layer(
        bottom=linear_interpolate(profile, bottom_hpa),
        top=linear_interpolate(profile, top_hpa),
    )


def effective_inflow_layer(
    profile: Profile,
    cape_min: float = EFFECTIVE_CAPE_MIN_JKG,
    cin_min: float = EFFECTIVE_CIN_MIN_JKG,
    search_depth_hpa: float = EFFECTIVE_SEARCH_DEPTH_HPA,
) -> Layer | None:
    """Effective inflow layer (Thompson et al. 2007).

    Lifts each row from the surface upward. The layer runs from the first row
    whose parcel has CAPE >= cape_min and CIN >= cin_min to the last row of
    the consecutive run that satisfies both. Returns None when no row does.
    """
    env = prepare_environment(profile)
    floor = env.pressure[0] - search_depth_hpa

    bottom = top = None
    for row in profile.bottom_up():
        if row.pressure_hpa is None or row.temperature_c is None or row.dewpoint_c is None:
            continue
        if row.pressure_hpa < floor:
            break
        parcel = Parcel(
            pressure_hpa=row.pressure_hpa,
            temperature_c=row.temperature_c,
            dewpoint_c=row.dewpoint_c,
        )
        try:
            ascent = lift_in_environment(parcel, env)
        except AnalysisError:
            logger.debug("Inflow candidate at %.0f hPa failed", row.pressure_hpa, exc_info=True)
            ascent = None

        qualifies = (
            ascent is not None
            and ascent.cape_jkg is not None
            and ascent.cin_jkg is not None
            and ascent.cape_jkg >= cape_min
            and ascent.cin_jkg >= cin_min
        )
        if qualifies:
            if bottom is None:
                bottom = row
            top = row
        elif bottom is not None:
            break

    if bottom is None:
        return None
    return Layer(bottom=bottom, top=top)
