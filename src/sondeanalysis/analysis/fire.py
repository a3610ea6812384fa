"""Fire plume ascent and blow-up analysis.

A plume is a mixed-layer parcel heated (and optionally moistened) by the
fire. Its buoyancy is measured against the environment with virtual
potential temperatures and integrated in height, so the integral is the
energy a rising plume has gained by each level.

The blow-up analysis scans the heating from 0 to 20 °C and looks for the
heating at which the equilibrium level, or the plume top, jumps upward the
fastest. A large jump over a small change in heating means a modest change in
fire intensity can lead to a much deeper plume.
"""

from __future__ import annotations

import functools
import logging

import numpy as np

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.ascent import build_parcel_profile
from sondeanalysis.analysis.parcels import mixed_layer_parcel
from sondeanalysis.analysis.prepare import Environment, prepare_environment
from sondeanalysis.errors import AnalysisError, NoDataError
from sondeanalysis.models import BlowUpAnalysis, Parcel, PlumeAscentAnalysis, Profile

logger = logging.getLogger(__name__)

PLUME_DT_MIN_C = 0.1
PLUME_DT_MAX_C = 20.0
PLUME_DT_STEP_C = 0.1
# Half width (°C) of the window the blow-up height change is measured over
BLOW_UP_HALF_WINDOW_C = 0.5
BLOW_UP_MIN_JUMP_M = 500.0
# Plume families kept per process: two moisture ratios for a couple of profiles
PLUME_FAMILY_CACHE_SIZE = 4


def heated_parcel(parcel: Parcel, dt: float, moisture_ratio: float | None) -> Parcel:
    """Parcel warmed by dt °C.

    moisture_ratio is how much heating adds 1 g/kg of water vapor: 10.0 adds
    1 g/kg for every 10 °C. None adds no moisture.
    """
    if moisture_ratio is None:
        return parcel.heated(dt)
    w = thermo.mixing_ratio(parcel.dewpoint_c, parcel.pressure_hpa) + dt / moisture_ratio / 1000.0
    return Parcel(
        pressure_hpa=parcel.pressure_hpa,
        temperature_c=parcel.temperature_c + dt,
        dewpoint_c=thermo.dewpoint_from_mixing_ratio(w, parcel.pressure_hpa),
    )


def _buoyancy(pressure: np.ndarray, parcel_tv: np.ndarray, env_tv: np.ndarray) -> np.ndarray:
    theta_p = thermo.potential_temperature(pressure, parcel_tv)
    theta_e = thermo.potential_temperature(pressure, env_tv)
    return (theta_p - theta_e) / theta_e


def _integrate(height: np.ndarray, buoyancy: np.ndarray, stop_at_el: bool = False):
    """Walk up the plume integrating buoyancy in height.

    Returns (el, top, max_int_buoyancy, level_max_int_buoyancy). The EL is the
    highest positive-to-negative crossing seen before the integral turns
    negative; top is where it does.
    """
    el = top = None
    integral = previous = 0.0
    best = 0.0
    best_level = float(height[0])
    for i in range(1, len(height)):
        h0, h1 = height[i - 1], height[i]
        b0, b1 = buoyancy[i - 1], buoyancy[i]
        integral += 0.5 * (b0 + b1) * (h1 - h0) * thermo.G
        if integral >= best:
            best, best_level = integral, float(h1)
        if b0 > 0.0 >= b1:
            el = float(h0 + (h1 - h0) * b0 / (b0 - b1))
            if stop_at_el:
                break
        if previous >= 0.0 > integral:
            top = float(h0 + (h1 - h0) * previous / (previous - integral))
            break
        previous = integral
    return el, top, best, best_level


def _lift_plume(parcel: Parcel, env: Environment) -> PlumeAscentAnalysis:
    pp, p_lcl, _ = build_parcel_profile(parcel, env)
    pressure = np.array(pp.pressure_hpa)
    height = np.array(pp.height_m)
    env_tv = np.array(pp.environment_virtual_t_c)

    el, top, max_int, level_max = _integrate(
        height, _buoyancy(pressure, np.array(pp.parcel_virtual_t_c), env_tv),
    )

    # Same plume with no latent heat release
    w0 = thermo.mixing_ratio(parcel.dewpoint_c, parcel.pressure_hpa)
    dry_t = thermo.dry_lapse(pressure, parcel.temperature_c, parcel.pressure_hpa)
    w = np.where(pressure >= p_lcl, w0, thermo.saturation_mixing_ratio(dry_t, pressure))
    dry_tv = thermo.virtual_temperature_from_w(dry_t, w)
    _, _, dry_int, _ = _integrate(
        height, _buoyancy(pressure, dry_tv, env_tv), stop_at_el=True,
    )

    lcl_height = None
    if env.pressure[-1] <= p_lcl <= env.pressure[0]:
        lcl_height = env.interp(p_lcl, env.height)

    return PlumeAscentAnalysis(
        parcel=parcel,
        lcl_height_asl_m=lcl_height,
        el_height_asl_m=el,
        max_height_asl_m=top,
        max_int_buoyancy_jkg=max_int,
        # Rounding can push the dry integral slightly past the full one
        max_dry_int_buoyancy_jkg=min(dry_int, max_int),
        level_max_int_buoyancy_m=level_max,
    )


def lift_plume_parcel(parcel: Parcel, profile: Profile) -> PlumeAscentAnalysis:
    """Lift a fire-heated parcel and analyze its buoyancy."""
    return _lift_plume(parcel, prepare_environment(profile))


def _heating_steps(dt_min: float, dt_max: float, dt_step: float) -> np.ndarray:
    """Heatings from dt_min in dt_step increments, never past dt_max."""
    n = int(np.floor((dt_max - dt_min) / dt_step + 1e-9)) + 1
    return dt_min + dt_step * np.arange(max(n, 0))


def _lift_family(
    profile: Profile, dts: np.ndarray, moisture_ratio: float | None,
) -> tuple[Parcel, tuple[tuple[float, PlumeAscentAnalysis], ...]]:
    env = prepare_environment(profile)
    start = mixed_layer_parcel(profile)
    family = []
    for dt in dts:
        dt = round(float(dt), 2)
        try:
            family.append((dt, _lift_plume(heated_parcel(start, dt, moisture_ratio), env)))
        except (AnalysisError, ValueError):
            logger.debug("Plume at +%.1f C failed", dt, exc_info=True)
    return start, tuple(family)


@functools.lru_cache(maxsize=PLUME_FAMILY_CACHE_SIZE)
def _plume_family(
    profile: Profile, moisture_ratio: float | None, dt_max: float, dt_step: float,
) -> tuple[Parcel, tuple[tuple[float, PlumeAscentAnalysis], ...]]:
    """Plumes for every heating from 0 to dt_max, shared by blow_up and calc_plumes."""
    logger.debug("Lifting plume family (ratio %s, step %s C)", moisture_ratio, dt_step)
    return _lift_family(profile, _heating_steps(0.0, dt_max, dt_step), moisture_ratio)


def _on_grid(dt: float, dt_step: float) -> bool:
    n = dt / dt_step
    return dt >= 0.0 and abs(n - round(n)) < 1e-6


def calc_plumes(
    profile: Profile,
    dt_min: float = PLUME_DT_MIN_C,
    dt_max: float = PLUME_DT_MAX_C,
    moisture_ratio: float | None = None,
    dt_step: float = PLUME_DT_STEP_C,
) -> list[PlumeAscentAnalysis]:
    """Plumes from the mixed-layer parcel for every heating in [dt_min, dt_max].

    When dt_min falls on the dt_step grid the plumes come from the same family
    blow_up uses.
    """
    if _on_grid(dt_min, dt_step):
        _, family = _plume_family(profile, moisture_ratio, dt_max, dt_step)
        lowest = round(dt_min, 2)
        family = tuple((dt, plume) for dt, plume in family if dt >= lowest)
    else:
        _, family = _lift_family(profile, _heating_steps(dt_min, dt_max, dt_step), moisture_ratio)
    if not family:
        raise NoDataError("No plume could be lifted")
    return [plume for _, plume in family]


def _fastest_jump(dts: list[float], heights: list[float | None], window: int):
    """Heating where heights rise fastest and the rise across the window."""
    pairs = [(dt, h) for dt, h in zip(dts, heights) if h is not None]
    if len(pairs) < 2:
        return None, None
    x = np.array([p[0] for p in pairs])
    y = np.array([p[1] for p in pairs])
    idx = int(np.argmax(np.gradient(y, x)))
    low = max(0, idx - window)
    high = min(len(y) - 1, idx + window)
    return float(x[idx]), float(y[high] - y[low])


def blow_up(
    profile: Profile,
    moisture_ratio: float | None = None,
    min_jump_m: float = BLOW_UP_MIN_JUMP_M,
    dt_max: float = PLUME_DT_MAX_C,
    dt_step: float = PLUME_DT_STEP_C,
) -> BlowUpAnalysis:
    """Find the heating at which the plume blows up.

    Raises NoDataError when no plume can be lifted or when neither the EL nor
    the plume top jumps by at least min_jump_m.
    """
    start, family = _plume_family(profile, moisture_ratio, dt_max, dt_step)
    if not family:
        raise NoDataError("No plume could be lifted for the blow-up analysis")

    window = int(round(BLOW_UP_HALF_WINDOW_C / dt_step))
    heat = [dt for dt, _ in family]
    dt_el, dz_el = _fastest_jump(heat, [p.el_height_asl_m for _, p in family], window)
    dt_top, dz_top = _fastest_jump(heat, [p.max_height_asl_m for _, p in family], window)

    if (dz_el or 0.0) < min_jump_m and (dz_top or 0.0) < min_jump_m:
        raise NoDataError(f"No plume blow-up within +{dt_max:.0f} C")

    dt_cloud = None
    for dt, plume in family:
        lcl = plume.lcl_height_asl_m
        if lcl is not None and (plume.max_height_asl_m is None or plume.max_height_asl_m >= lcl):
            dt_cloud = dt
            break

    logger.debug(
        "Blow-up (ratio %s): EL %s C / %s m, top %s C / %s m",
        moisture_ratio, dt_el, dz_el, dt_top, dz_top,
    )
    return BlowUpAnalysis(
        starting_parcel=start,
        moisture_ratio=moisture_ratio,
        delta_t_cloud=dt_cloud,
        delta_t_el=dt_el,
        delta_z_el=dz_el,
        delta_t_top=dt_top,
        delta_z_top=dz_top,
    )
