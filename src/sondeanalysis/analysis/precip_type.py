"""Precipitation type from the temperature profile (Bourgouin 2000).

The profile is cut into layers at every 0 °C crossing, up to the top of the
highest warm layer. Each layer's energy is its area against the 0 °C isotherm
on a tephigram, Cp times the integral of (T - 0 °C) d ln theta, in J/kg.
Falling snow starts above the highest warm layer and the layers below melt or
refreeze it on the way down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.prepare import prepare_environment
from sondeanalysis.analysis.provider import PrecipCode
from sondeanalysis.models import Profile

logger = logging.getLogger(__name__)

# Warm layer aloft that melts snow
MELT_ALOFT_JKG = 2.0
# Warm surface layer: below SNOW_MAX snow survives, above RAIN_MIN it all melts
SURFACE_SNOW_MAX_JKG = 5.6
SURFACE_RAIN_MIN_JKG = 13.2
# Cold layer that refreezes rain into ice pellets, growing with the warm area above.
# Below this line a cold surface layer gives freezing rain, mixed with pellets
# within 20 J/kg of it, which is reported as freezing rain.
REFREEZE_PELLETS_BASE_JKG = 66.0
REFREEZE_SLOPE = 0.66


@dataclass(frozen=True)
class FreezingLayer:
    warm: bool
    energy_jkg: float  # magnitude of the area
    at_surface: bool


def _area(temperature: list[float], ln_theta: list[float]) -> float:
    t = np.array(temperature)
    x = np.array(ln_theta)
    return abs(thermo.CP_D * float(np.sum(0.5 * (t[:-1] + t[1:]) * np.diff(x))))


def freezing_layers(pressure: np.ndarray, temperature: np.ndarray) -> list[FreezingLayer]:
    """Warm and cold layers between 0 °C crossings, surface first.

    The list ends with the highest warm layer. It is empty when no level is
    above freezing.
    """
    warm_levels = np.flatnonzero(temperature > 0.0)
    if len(warm_levels) == 0:
        return []
    stop = min(int(warm_levels[-1]) + 2, len(pressure))
    ln_theta = np.log(thermo.potential_temperature(pressure, temperature))

    layers: list[FreezingLayer] = []
    warm = bool(temperature[0] > 0.0)
    ts, xs = [float(temperature[0])], [float(ln_theta[0])]
    for i in range(1, stop):
        t0, t1 = temperature[i - 1], temperature[i]
        if (t0 > 0.0) != (t1 > 0.0):
            frac = t0 / (t0 - t1)
            p_cross = float(np.exp(np.log(pressure[i - 1]) + frac * np.log(pressure[i] / pressure[i - 1])))
            x_cross = float(np.log(thermo.potential_temperature(p_cross, 0.0)))
            ts.append(0.0)
            xs.append(x_cross)
            layers.append(FreezingLayer(warm, _area(ts, xs), at_surface=not layers))
            warm = not warm
            ts, xs = [0.0], [x_cross]
        ts.append(float(t1))
        xs.append(float(ln_theta[i]))
    # The part above the last crossing is the cold snow source
    if warm and len(ts) > 1:
        layers.append(FreezingLayer(warm, _area(ts, xs), at_surface=not layers))
    return layers


def _refrozen(cold_jkg: float, warm_above_jkg: float, at_surface: bool) -> PrecipCode:
    if cold_jkg > REFREEZE_PELLETS_BASE_JKG + REFREEZE_SLOPE * warm_above_jkg:
        return PrecipCode.ICE_PELLETS
    if at_surface:
        return PrecipCode.FREEZING_RAIN
    return PrecipCode.RAIN


def precip_type_from_layers(layers: list[FreezingLayer]) -> PrecipCode:
    """Follow falling snow down through the layers, highest first."""
    state = PrecipCode.SNOW
    warm_above = 0.0
    for layer in reversed(layers):
        if layer.warm:
            warm_above = layer.energy_jkg
            if layer.at_surface:
                if state in (PrecipCode.SNOW, PrecipCode.ICE_PELLETS):
                    if layer.energy_jkg > SURFACE_RAIN_MIN_JKG:
                        state = PrecipCode.RAIN
                    elif layer.energy_jkg >= SURFACE_SNOW_MAX_JKG:
                        state = PrecipCode.RAIN_AND_SNOW if state is PrecipCode.SNOW else PrecipCode.RAIN
            elif layer.energy_jkg >= MELT_ALOFT_JKG:
                state = PrecipCode.RAIN
        elif state is PrecipCode.RAIN:
            state = _refrozen(layer.energy_jkg, warm_above, layer.at_surface)
    return state


def bourgouin_precip_type(profile: Profile) -> PrecipCode:
    """Precipitation type a falling hydrometeor would reach the surface as.

    Raises MissingProfileDataError when the profile has too few temperatures.
    """
    env = prepare_environment(profile)
    layers = freezing_layers(env.pressure, env.temperature)
    code = precip_type_from_layers(layers)
    logger.debug(
        "Bourgouin: %s from %d layers %s",
        code.name,
        len(layers),
        ", ".join(f"{'+' if lay.warm else '-'}{lay.energy_jkg:.1f}" for lay in layers),
    )
    return code
