"""Parcel ascent: lift a parcel through a profile and analyze the trajectory.

The parcel follows its dry adiabat up to the lifting condensation level and the
pseudo-adiabat above it. MetPy solves for the LCL iteratively and both
branches start from that one point.

Buoyancy is always computed from virtual temperatures. CAPE and CIN are
trapezoid integrals in ln p over exactly the levels of the returned
ParcelProfile, which include the origin, the LCL, every environment level
above the origin and the zero-buoyancy crossings.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.prepare import Environment, prepare_environment
from sondeanalysis.errors import MissingProfileDataError, NumericalFailureError
from sondeanalysis.models import Parcel, ParcelAscentAnalysis, ParcelProfile, Profile

logger = logging.getLogger(__name__)

# Levels closer than this (hPa) are treated as the same level
_SAME_LEVEL_HPA = 1e-6
LIFTED_INDEX_HPA = 500.0


def lcl(parcel: Parcel) -> tuple[float, float]:
    """Pressure (hPa) and temperature (°C) of the parcel's LCL.

    A saturated parcel is its own LCL. Raises NumericalFailureError when the
    iteration does not converge.
    """
    p0, t0, td0 = parcel.pressure_hpa, parcel.temperature_c, parcel.dewpoint_c
    if td0 >= t0:
        return p0, t0

    try:
        p_lcl, t_lcl = thermo.lcl(p0, t0, td0)
    except (ValueError, RuntimeError) as exc:
        raise NumericalFailureError(f"LCL solver failed for {parcel}: {exc}") from exc
    if not (math.isfinite(p_lcl) and math.isfinite(t_lcl)):
        raise NumericalFailureError(f"LCL solver returned no value for {parcel}")
    return min(p_lcl, p0), t_lcl


def parcel_profile(parcel: Parcel, profile: Profile) -> ParcelProfile:
    """Lifted-parcel trajectory through the profile."""
    env = prepare_environment(profile)
    pp, _, _ = build_parcel_profile(parcel, env)
    return pp


def lift_parcel(parcel: Parcel, profile: Profile) -> ParcelAscentAnalysis:
    """Lift the parcel and derive CAPE, CIN, LCL, LFC and EL."""
    return lift_in_environment(parcel, prepare_environment(profile))


def lift_in_environment(parcel: Parcel, env: Environment) -> ParcelAscentAnalysis:
    """lift_parcel for callers that already prepared the environment."""
    pp, p_lcl, t_lcl = build_parcel_profile(parcel, env)
    return analyze_ascent(pp, env, p_lcl, t_lcl)


def build_parcel_profile(
    parcel: Parcel, env: Environment,
) -> tuple[ParcelProfile, float, float]:
    """Build the trajectory, returning it with the LCL pressure and temperature."""
    p0 = parcel.pressure_hpa
    if p0 > env.pressure[0] + _SAME_LEVEL_HPA:
        raise MissingProfileDataError(
            f"Parcel at {p0:.1f} hPa starts below the profile ({env.pressure[0]:.1f} hPa)"
        )
    above = env.pressure[env.pressure < p0 - _SAME_LEVEL_HPA]
    if len(above) == 0:
        raise MissingProfileDataError(f"No temperature data above {p0:.1f} hPa")

    p_lcl, t_lcl = lcl(parcel)

    levels = [p0, *above.tolist()]
    if above[-1] < p_lcl < p0 - _SAME_LEVEL_HPA and not np.any(
        np.abs(above - p_lcl) < _SAME_LEVEL_HPA
    ):
        levels.append(p_lcl)
        levels.sort(reverse=True)
    pressure = np.array(levels)

    pcl_t = np.empty(len(pressure))
    pcl_td = np.empty(len(pressure))
    pcl_tv = np.empty(len(pressure))

    dry = pressure >= p_lcl
    w0 = thermo.mixing_ratio(parcel.dewpoint_c, p0)
    pcl_t[dry] = thermo.dry_lapse(pressure[dry], parcel.temperature_c, p0)
    pcl_td[dry] = np.minimum(thermo.dewpoint_from_mixing_ratio(w0, pressure[dry]), pcl_t[dry])
    pcl_tv[dry] = thermo.virtual_temperature_from_w(pcl_t[dry], w0)

    moist = ~dry
    if moist.any():
        pcl_t[moist] = thermo.moist_lapse(pressure[moist], t_lcl, p_lcl)
        pcl_td[moist] = pcl_t[moist]
        pcl_tv[moist] = thermo.saturated_virtual_temperature(pcl_t[moist], pressure[moist])

    x_env = -np.log(env.pressure)
    x = -np.log(pressure)
    env_tv = np.interp(x, x_env, env.virtual_temperature)
    height = np.interp(x, x_env, env.height)

    pressure, height, pcl_t, pcl_td, pcl_tv, env_tv = _insert_crossings(
        env, pressure, height, pcl_t, pcl_td, pcl_tv, env_tv,
    )

    pp = ParcelProfile(
        parcel=parcel,
        pressure_hpa=pressure.tolist(),
        height_m=height.tolist(),
        parcel_t_c=pcl_t.tolist(),
        parcel_dewpoint_c=pcl_td.tolist(),
        parcel_virtual_t_c=pcl_tv.tolist(),
        environment_virtual_t_c=env_tv.tolist(),
    )
    return pp, p_lcl, t_lcl


def _insert_crossings(env: Environment, pressure, height, pcl_t, pcl_td, pcl_tv, env_tv):
    """Insert a level wherever the buoyancy changes sign between two levels."""
    buoyancy = pcl_tv - env_tv
    sign_change = np.flatnonzero(buoyancy[:-1] * buoyancy[1:] < 0.0)
    if len(sign_change) == 0:
        return pressure, height, pcl_t, pcl_td, pcl_tv, env_tv

    x_env = -np.log(env.pressure)
    cols = [pressure, height, pcl_t, pcl_td, pcl_tv, env_tv]
    out = [[] for _ in cols]
    prev = 0
    for i in sign_change:
        for col, dst in zip(cols, out):
            dst.extend(col[prev:i + 1].tolist())
        frac = buoyancy[i] / (buoyancy[i] - buoyancy[i + 1])
        ln_p = math.log(pressure[i]) + frac * (math.log(pressure[i + 1]) - math.log(pressure[i]))
        p_cross = math.exp(ln_p)
        tv_cross = float(np.interp(-ln_p, x_env, env.virtual_temperature))
        out[0].append(p_cross)
        out[1].append(float(np.interp(-ln_p, x_env, env.height)))
        out[2].append(pcl_t[i] + frac * (pcl_t[i + 1] - pcl_t[i]))
        out[3].append(pcl_td[i] + frac * (pcl_td[i + 1] - pcl_td[i]))
        out[4].append(tv_cross)
        out[5].append(tv_cross)
        prev = i + 1
    for col, dst in zip(cols, out):
        dst.extend(col[prev:].tolist())
    return tuple(np.array(dst) for dst in out)


def analyze_ascent(
    pp: ParcelProfile, env: Environment, p_lcl: float, t_lcl: float,
) -> ParcelAscentAnalysis:
    """Derive the ascent scalars from a ParcelProfile.

    The LFC is the LCL when the parcel is already buoyant there, otherwise the
    first negative-to-positive crossing above the LCL. The EL is the highest
    positive-to-negative crossing above the LFC. Without an LFC both CAPE and
    CIN are zero.
    """
    p = np.array(pp.pressure_hpa)
    b = np.array(pp.parcel_virtual_t_c) - np.array(pp.environment_virtual_t_c)
    dlnp = np.log(p[:-1]) - np.log(p[1:])

    lfc_idx = None
    el_idx = None
    saturated = np.flatnonzero(p <= p_lcl + _SAME_LEVEL_HPA)
    if len(saturated):
        first = int(saturated[0])
        if b[first] > 0.0:
            lfc_idx = first
        else:
            for k in range(first + 1, len(p)):
                if b[k - 1] <= 0.0 < b[k]:
                    lfc_idx = k - 1
                    break
    if lfc_idx is not None:
        for k in range(len(p) - 1, lfc_idx, -1):
            if b[k - 1] > 0.0 >= b[k]:
                el_idx = k
                break

    cape = cin = 0.0
    if lfc_idx is not None:
        stop = el_idx if el_idx is not None else len(p) - 1
        pos = np.clip(b, 0.0, None)
        neg = np.clip(b, None, 0.0)
        cape = thermo.RD * float(np.sum(0.5 * (pos[lfc_idx:stop] + pos[lfc_idx + 1:stop + 1]) * dlnp[lfc_idx:stop]))
        cin = thermo.RD * float(np.sum(0.5 * (neg[:lfc_idx] + neg[1:lfc_idx + 1]) * dlnp[:lfc_idx]))

    lcl_height_agl = None
    if env.pressure[-1] <= p_lcl <= env.pressure[0]:
        lcl_height_agl = env.interp(p_lcl, env.height) - env.surface_height

    lifted_index = None
    if p[-1] <= LIFTED_INDEX_HPA <= p[0]:
        x = -np.log(p)
        pcl_500 = float(np.interp(-math.log(LIFTED_INDEX_HPA), x, pp.parcel_t_c))
        lifted_index = env.interp(LIFTED_INDEX_HPA, env.temperature) - pcl_500

    return ParcelAscentAnalysis(
        parcel=pp.parcel,
        profile=pp,
        cape_jkg=cape,
        cin_jkg=cin,
        lcl_pressure_hpa=p_lcl,
        lcl_temperature_c=t_lcl,
        lcl_height_agl_m=lcl_height_agl,
        lfc_pressure_hpa=float(p[lfc_idx]) if lfc_idx is not None else None,
        lfc_virtual_t_c=pp.environment_virtual_t_c[lfc_idx] if lfc_idx is not None else None,
        el_pressure_hpa=float(p[el_idx]) if el_idx is not None else None,
        el_height_asl_m=pp.height_m[el_idx] if el_idx is not None else None,
        el_temperature_c=pp.parcel_t_c[el_idx] if el_idx is not None else None,
        lifted_index_c=lifted_index,
    )
