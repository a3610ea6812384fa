"""Downdraft CAPE.

Follow a moist adiabat down to the ground from the minimum theta-e level in
the lowest 400 hPa of the sounding and take the area between the descending
parcel and the environment. Values above 1000 J/kg go with strong downdrafts
and damaging outflow winds.
"""

from __future__ import annotations

import logging

import numpy as np

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.prepare import prepare_environment
from sondeanalysis.errors import MissingProfileDataError, NumericalFailureError
from sondeanalysis.models import Parcel, ParcelProfile, Profile

logger = logging.getLogger(__name__)

DCAPE_SEARCH_DEPTH_HPA = 400.0


def dcape_parcel(profile: Profile, depth_hpa: float = DCAPE_SEARCH_DEPTH_HPA) -> Parcel:
    """Complete level with the lowest theta-e within depth_hpa of the surface."""
    env = prepare_environment(profile)
    top = env.pressure[0] - depth_hpa
    candidates = [
        Parcel(pressure_hpa=p, temperature_c=t, dewpoint_c=td)
        for p, t, td in zip(env.pressure, env.temperature, env.dewpoint)
        if p >= top and not np.isnan(td)
    ]
    if not candidates:
        raise MissingProfileDataError(f"No dew points in the lowest {depth_hpa:.0f} hPa")
    return min(
        candidates,
        key=lambda c: thermo.equivalent_potential_temperature(c.pressure_hpa, c.temperature_c, c.dewpoint_c),
    )


def dcape(
    profile: Profile, depth_hpa: float = DCAPE_SEARCH_DEPTH_HPA,
) -> tuple[ParcelProfile, float, float]:
    """Descent trajectory, DCAPE (J/kg) and downrush temperature (°C).

    The parcel starts at its wet-bulb temperature and follows the moist
    adiabat down, staying saturated. The trajectory is stored surface first,
    like every ParcelProfile.
    """
    env = prepare_environment(profile)
    parcel = dcape_parcel(profile, depth_hpa)
    try:
        t_wet = thermo.wet_bulb_temperature(parcel.pressure_hpa, parcel.temperature_c, parcel.dewpoint_c)
    except (ValueError, RuntimeError) as exc:
        raise NumericalFailureError(f"Wet-bulb temperature failed for {parcel}: {exc}") from exc

    below = env.pressure >= parcel.pressure_hpa
    pressure = env.pressure[below]
    height = env.height[below]
    env_tv = env.virtual_temperature[below]

    pcl_t = thermo.moist_lapse(pressure, t_wet, parcel.pressure_hpa)
    pcl_tv = thermo.saturated_virtual_temperature(pcl_t, pressure)

    # Environment minus parcel is positive for a negatively buoyant downdraft
    deficit = env_tv - pcl_tv
    dlnp = np.log(pressure[:-1]) - np.log(pressure[1:])
    dcape_jkg = thermo.RD * float(np.sum(0.5 * (deficit[1:] + deficit[:-1]) * dlnp))

    descent = ParcelProfile(
        parcel=parcel,
        pressure_hpa=pressure.tolist(),
        height_m=height.tolist(),
        parcel_t_c=pcl_t.tolist(),
        parcel_dewpoint_c=pcl_t.tolist(),
        parcel_virtual_t_c=pcl_tv.tolist(),
        environment_virtual_t_c=env_tv.tolist(),
    )
    return descent, dcape_jkg, float(pcl_t[0])
