"""The fill pipeline as an explicit table of steps.

Each FillStep names the Analysis fields it produces and the fields it needs.
A step's fields are filled together or not at all. The table is checked when
this module is imported: every required field must be produced by an earlier
step, so a dependent can never run before its prerequisite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sondeanalysis.analysis import (
    downburst,
    fire,
    indices,
    kinematics,
    layers,
    parcels,
    precip_type,
    provider,
)
from sondeanalysis.analysis.ascent import lift_parcel
from sondeanalysis.config import AnalysisSettings
from sondeanalysis.models import Profile

logger = logging.getLogger(__name__)

ComputeFn = Callable[[Profile, dict[str, Any], AnalysisSettings], dict[str, Any]]

# Fields set by the caller rather than by a step
SOURCE_FIELDS = ("provider_analysis",)


@dataclass(frozen=True)
class FillStep:
    name: str
    fields: tuple[str, ...]
    compute: ComputeFn
    requires: tuple[str, ...] = ()


# --- Independent scalars ---

def _precipitable_water(profile, inputs, settings):
    return {"precipitable_water_mm": indices.precipitable_water(profile)}


def _haines(profile, inputs, settings):
    return {"haines": indices.haines(profile)}


def _haines_low(profile, inputs, settings):
    return {"haines_low": indices.haines_low(profile)}


def _haines_mid(profile, inputs, settings):
    return {"haines_mid": indices.haines_mid(profile)}


def _haines_high(profile, inputs, settings):
    return {"haines_high": indices.haines_high(profile)}


def _hdw(profile, inputs, settings):
    return {"hdw": indices.hot_dry_windy(profile)}


def _dcape(profile, inputs, settings):
    descent, value, downrush = downburst.dcape(profile, settings.dcape_depth_hpa)
    return {
        "downburst_profile": descent,
        "dcape_jkg": value,
        "downrush_t_c": downrush,
    }


# --- Parcel ascents ---

def _mixed_layer(profile, inputs, settings):
    parcel = parcels.mixed_layer_parcel(profile, settings.mixed_layer_depth_hpa)
    return {"mixed_layer": lift_parcel(parcel, profile)}


def _most_unstable(profile, inputs, settings):
    parcel = parcels.most_unstable_parcel(profile, settings.most_unstable_depth_hpa)
    return {"most_unstable": lift_parcel(parcel, profile)}


def _surface(profile, inputs, settings):
    return {"surface": lift_parcel(parcels.surface_parcel(profile), profile)}


def _convective(profile, inputs, settings):
    return {"convective": parcels.robust_convective_parcel_ascent(profile)}


def _convective_t(profile, inputs, settings):
    return {"convective_t_c": inputs["convective"].parcel.temperature_c}


# --- Kinematics ---

def _storm_motion(profile, inputs, settings):
    right, left = kinematics.bunkers_storm_motion(profile, settings.bunkers_deviation_ms)
    return {"right_mover": right, "left_mover": left}


def _mean_wind(profile, inputs, settings):
    layer = layers.layer_agl(profile, settings.mean_wind_depth_m)
    return {"mean_wind": kinematics.mean_wind(layer, profile)}


def _helicity_3k(profile, inputs, settings):
    layer = layers.layer_agl(profile, settings.helicity_depth_m)
    return {
        "sr_helicity_3k_rm": kinematics.sr_helicity(layer, inputs["right_mover"], profile),
        "sr_helicity_3k_lm": kinematics.sr_helicity(layer, inputs["left_mover"], profile),
    }


def _effective_inflow_layer(profile, inputs, settings):
    layer = layers.effective_inflow_layer(
        profile,
        cape_min=settings.inflow_cape_min_jkg,
        cin_min=settings.inflow_cin_min_jkg,
        search_depth_hpa=settings.inflow_search_depth_hpa,
    )
    return {"effective_inflow_layer": layer}


def _helicity_effective(profile, inputs, settings):
    layer = inputs["effective_inflow_layer"]
    return {
        "sr_helicity_eff_rm": kinematics.sr_helicity(layer, inputs["right_mover"], profile),
        "sr_helicity_eff_lm": kinematics.sr_helicity(layer, inputs["left_mover"], profile),
    }


def _effective(profile, inputs, settings):
    parcel = parcels.average_parcel(profile, inputs["effective_inflow_layer"])
    return {"effective": lift_parcel(parcel, profile)}


# --- Fire weather ---

def _blow_up(field: str, ratio_setting: str) -> ComputeFn:
    def compute(profile, inputs, settings):
        result = fire.blow_up(
            profile,
            moisture_ratio=getattr(settings, ratio_setting),
            min_jump_m=settings.blow_up_min_jump_m,
            dt_max=settings.plume_dt_max_c,
            dt_step=settings.plume_dt_step_c,
        )
        return {field: result, "blow_up_start_parcel": result.starting_parcel}
    return compute


def _plumes(field: str, ratio_setting: str) -> ComputeFn:
    def compute(profile, inputs, settings):
        return {
            field: tuple(fire.calc_plumes(
                profile,
                dt_min=settings.plume_dt_min_c,
                dt_max=settings.plume_dt_max_c,
                moisture_ratio=getattr(settings, ratio_setting),
                dt_step=settings.plume_dt_step_c,
            ))
        }
    return compute


# --- Precipitation type ---

def _provider_precip_type(profile, inputs, settings):
    bag = inputs["provider_analysis"]
    code = provider.reported_precip_code(bag)
    if code is None:
        return {"provider_precip_type": None}
    return {"provider_precip_type": provider.intensity_adjusted(code, bag)}


def _bourgouin_precip_type(profile, inputs, settings):
    code = precip_type.bourgouin_precip_type(profile)
    return {
        "bourgouin_precip_type": provider.intensity_adjusted(int(code), inputs["provider_analysis"])
    }


def _check_order(steps: tuple[FillStep, ...]) -> tuple[FillStep, ...]:
    """Raise if a step requires a field no earlier step produces."""
    produced: set[str] = set(SOURCE_FIELDS)
    for step in steps:
        missing = [f for f in step.requires if f not in produced]
        if missing:
            raise RuntimeError(
                f"Fill step '{step.name}' requires {missing} before they are produced"
            )
        produced.update(step.fields)
    return steps


FILL_STEPS: tuple[FillStep, ...] = _check_order((
    FillStep("precipitable_water", ("precipitable_water_mm",), _precipitable_water),
    FillStep("haines", ("haines",), _haines),
    FillStep("haines_low", ("haines_low",), _haines_low),
    FillStep("haines_mid", ("haines_mid",), _haines_mid),
    FillStep("haines_high", ("haines_high",), _haines_high),
    FillStep("hdw", ("hdw",), _hdw),
    FillStep("dcape", ("dcape_jkg", "downrush_t_c", "downburst_profile"), _dcape),
    FillStep("mixed_layer", ("mixed_layer",), _mixed_layer),
    FillStep("most_unstable", ("most_unstable",), _most_unstable),
    FillStep("surface", ("surface",), _surface),
    FillStep("convective", ("convective",), _convective),
    FillStep("convective_t", ("convective_t_c",), _convective_t, requires=("convective",)),
    FillStep("storm_motion", ("right_mover", "left_mover"), _storm_motion),
    FillStep("mean_wind", ("mean_wind",), _mean_wind),
    FillStep(
        "sr_helicity_3k",
        ("sr_helicity_3k_rm", "sr_helicity_3k_lm"),
        _helicity_3k,
        requires=("right_mover", "left_mover"),
    ),
    FillStep("effective_inflow_layer", ("effective_inflow_layer",), _effective_inflow_layer),
    FillStep(
        "sr_helicity_effective",
        ("sr_helicity_eff_rm", "sr_helicity_eff_lm"),
        _helicity_effective,
        requires=("effective_inflow_layer", "right_mover", "left_mover"),
    ),
    FillStep(
        "effective",
        ("effective",),
        _effective,
        requires=("effective_inflow_layer",),
    ),
    FillStep(
        "blow_up_low",
        ("blow_up_low", "blow_up_start_parcel"),
        _blow_up("blow_up_low", "moisture_ratio_low"),
    ),
    FillStep(
        "blow_up_high",
        ("blow_up_high", "blow_up_start_parcel"),
        _blow_up("blow_up_high", "moisture_ratio_high"),
    ),
    FillStep(
        "plumes_low",
        ("plumes_low",),
        _plumes("plumes_low", "moisture_ratio_low"),
        requires=("blow_up_start_parcel",),
    ),
    FillStep(
        "plumes_high",
        ("plumes_high",),
        _plumes("plumes_high", "moisture_ratio_high"),
        requires=("blow_up_start_parcel",),
    ),
    FillStep(
        "provider_precip_type",
        ("provider_precip_type",),
        _provider_precip_type,
        requires=("provider_analysis",),
    ),
    FillStep(
        "bourgouin_precip_type",
        ("bourgouin_precip_type",),
        _bourgouin_precip_type,
        requires=("provider_analysis",),
    ),
))

# Every field the table can fill, in fill order
FILLED_FIELDS: tuple[str, ...] = tuple(dict.fromkeys(f for s in FILL_STEPS for f in s.fields))
