"""Wind-profile analysis: mean wind, bulk shear, Bunkers storm motion, helicity.

Layer averages and helicity are computed by MetPy on the wind levels inside
the layer, with the layer ends interpolated in ln p.
"""

from __future__ import annotations

import logging
import math

import metpy.calc as mpcalc
import numpy as np
from metpy.units import units

from sondeanalysis.analysis.layers import layer_agl
from sondeanalysis.analysis.prepare import column, interpolate_at_height, wind_arrays
from sondeanalysis.errors import MissingProfileDataError, NoDataError
from sondeanalysis.models import Layer, Profile, WindUV

logger = logging.getLogger(__name__)

BUNKERS_DEVIATION_MS = 7.5
BUNKERS_DEPTH_M = 6000.0
BUNKERS_LOW_DEPTH_M = 500.0
BUNKERS_HIGH_BOTTOM_M = 5500.0


def _layer_bounds(layer: Layer) -> tuple[float, float]:
    bottom, top = layer.bottom.pressure_hpa, layer.top.pressure_hpa
    if bottom is None or top is None:
        raise NoDataError("Layer has no pressure bounds")
    return bottom, top


def _layer_winds(profile: Profile, layer: Layer) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pressure, u and v at every wind level inside the layer.

    The layer ends are interpolated in ln p, so the first and last entries are
    always the layer bottom and top.
    """
    bottom, top = _layer_bounds(layer)
    p, u, v = wind_arrays(profile)
    if bottom > p[0] or top < p[-1]:
        raise MissingProfileDataError(
            f"Wind data ({p[0]:.0f}-{p[-1]:.0f} hPa) does not span {bottom:.0f}-{top:.0f} hPa"
        )
    inside = (p < bottom) & (p > top)
    layer_p = np.concatenate(([bottom], p[inside], [top]))
    x = -np.log(p)
    x_layer = -np.log(layer_p)
    return layer_p, np.interp(x_layer, x, u), np.interp(x_layer, x, v)


def _heights_at(profile: Profile, pressures: np.ndarray) -> np.ndarray:
    """Heights (m ASL) at the given pressures, interpolated in ln p."""
    p = column(profile, "pressure_hpa")
    z = column(profile, "height_m")
    mask = ~(np.isnan(p) | np.isnan(z))
    p, z = p[mask], z[mask]
    if len(p) < 2 or pressures[0] > p[0] or pressures[-1] < p[-1]:
        raise MissingProfileDataError("Not enough heights to span the layer")
    return np.interp(-np.log(pressures), -np.log(p), z)


def mean_wind(layer: Layer, profile: Profile) -> WindUV:
    """Pressure-weighted mean wind over the layer."""
    p, u, v = _layer_winds(profile, layer)
    if p[0] == p[-1]:
        return WindUV(u_ms=float(u[0]), v_ms=float(v[0]))
    u_mean, v_mean = mpcalc.weighted_continuous_average(
        units.Quantity(p, "hPa"),
        units.Quantity(u, "m/s"),
        units.Quantity(v, "m/s"),
        bottom=units.Quantity(p[0], "hPa"),
        depth=units.Quantity(p[0] - p[-1], "hPa"),
    )
    return WindUV(u_ms=float(u_mean.m_as("m/s")), v_ms=float(v_mean.m_as("m/s")))


def bulk_shear(layer: Layer, profile: Profile) -> WindUV:
    """Vector difference between the wind at the layer top and bottom."""
    _, u, v = _layer_winds(profile, layer)
    return WindUV(u_ms=float(u[-1] - u[0]), v_ms=float(v[-1] - v[0]))


def bunkers_storm_motion(
    profile: Profile, deviation_ms: float = BUNKERS_DEVIATION_MS,
) -> tuple[WindUV, WindUV]:
    """Right- and left-mover supercell motion (Bunkers et al. 2000).

    The 0-6 km mean wind is offset by deviation_ms perpendicular to the shear
    between the 0-0.5 km and 5.5-6 km mean winds. The right mover lies to the
    right of the shear vector.
    """
    surface = profile.surface_height_m
    if surface is None:
        raise MissingProfileDataError("Profile has no surface height")

    mean = mean_wind(layer_agl(profile, BUNKERS_DEPTH_M), profile)
    low = mean_wind(layer_agl(profile, BUNKERS_LOW_DEPTH_M), profile)
    high_layer = Layer(
        bottom=interpolate_at_height(profile, surface + BUNKERS_HIGH_BOTTOM_M),
        top=interpolate_at_height(profile, surface + BUNKERS_DEPTH_M),
    )
    high = mean_wind(high_layer, profile)

    shear_u = high.u_ms - low.u_ms
    shear_v = high.v_ms - low.v_ms
    shear = math.hypot(shear_u, shear_v)
    if shear < 1e-6:
        raise NoDataError("No 0-6 km shear, storm motion is undefined")

    du = deviation_ms * shear_v / shear
    dv = -deviation_ms * shear_u / shear
    right = WindUV(u_ms=mean.u_ms + du, v_ms=mean.v_ms + dv)
    left = WindUV(u_ms=mean.u_ms - du, v_ms=mean.v_ms - dv)
    return right, left


def sr_helicity(layer: Layer, storm_motion: WindUV, profile: Profile) -> float:
    """Storm-relative helicity (m2/s2) over the layer.

    Positive for hodographs that turn clockwise with height relative to the
    storm.
    """
    p, u, v = _layer_winds(profile, layer)
    if p[0] == p[-1]:
        return 0.0
    # MetPy measures heights from the lowest level, here the layer bottom
    z = _heights_at(profile, p)
    z = z - z[0]
    _, _, total = mpcalc.storm_relative_helicity(
        units.Quantity(z, "m"),
        units.Quantity(u, "m/s"),
        units.Quantity(v, "m/s"),
        units.Quantity(z[-1], "m"),
        bottom=units.Quantity(0.0, "m"),
        storm_u=units.Quantity(storm_motion.u_ms, "m/s"),
        storm_v=units.Quantity(storm_motion.v_ms, "m/s"),
    )
    return float(total.m_as("m^2/s^2"))
