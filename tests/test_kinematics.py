"""Tests for mean wind, storm motion and helicity (analysis/kinematics.py)."""

import pytest

from sondeanalysis.analysis.kinematics import (
    bulk_shear,
    bunkers_storm_motion,
    mean_wind,
    sr_helicity,
)
from sondeanalysis.analysis.layers import layer_agl
from sondeanalysis.errors import MissingProfileDataError, NoDataError
from sondeanalysis.models import KT_TO_MS, WindUV


@pytest.fixture
def westerly_profile(profile_factory):
    """Uniform 20 kt westerly."""
    return profile_factory(
        dewpoint_at=lambda z, t: t - 10.0,
        wind_at=lambda z: (20.0, 270.0),
    )


@pytest.fixture
def unidirectional_profile(profile_factory):
    """Westerly increasing with height: straight-line hodograph."""
    return profile_factory(
        dewpoint_at=lambda z, t: t - 10.0,
        wind_at=lambda z: (5.0 + 5.0 * z / 1000.0, 270.0),
    )


def test_mean_wind_of_uniform_flow(westerly_profile):
    wind = mean_wind(layer_agl(westerly_profile, 6000.0), westerly_profile)
    assert wind.u_ms == pytest.approx(20.0 * KT_TO_MS, rel=1e-3)
    assert wind.v_ms == pytest.approx(0.0, abs=1e-6)


def test_bulk_shear_of_uniform_flow_is_zero(westerly_profile):
    shear = bulk_shear(layer_agl(westerly_profile, 6000.0), westerly_profile)
    assert shear.speed_ms == pytest.approx(0.0, abs=1e-6)


def test_bulk_shear_increasing_westerly(unidirectional_profile):
    shear = bulk_shear(layer_agl(unidirectional_profile, 6000.0), unidirectional_profile)
    assert shear.u_ms == pytest.approx(30.0 * KT_TO_MS, rel=0.02)
    assert shear.direction_deg == pytest.approx(270.0, abs=0.1)


def test_mean_wind_needs_wind(no_wind_profile):
    with pytest.raises(MissingProfileDataError):
        mean_wind(layer_agl(no_wind_profile, 6000.0), no_wind_profile)


def test_bunkers_right_mover_is_right_of_shear(severe_profile):
    right, left = bunkers_storm_motion(severe_profile)
    shear = bulk_shear(layer_agl(severe_profile, 6000.0), severe_profile)
    dev_u = right.u_ms - left.u_ms
    dev_v = right.v_ms - left.v_ms
    # Cross product shear x deviation is negative when the deviation points right
    assert shear.u_ms * dev_v - shear.v_ms * dev_u < 0
    assert WindUV(u_ms=dev_u, v_ms=dev_v).speed_ms == pytest.approx(15.0, rel=1e-6)


def test_bunkers_movers_straddle_mean_wind(severe_profile):
    right, left = bunkers_storm_motion(severe_profile)
    mean = mean_wind(layer_agl(severe_profile, 6000.0), severe_profile)
    assert (right.u_ms + left.u_ms) / 2 == pytest.approx(mean.u_ms)
    assert (right.v_ms + left.v_ms) / 2 == pytest.approx(mean.v_ms)


def test_bunkers_custom_deviation(severe_profile):
    right, left = bunkers_storm_motion(severe_profile, deviation_ms=5.0)
    gap = WindUV(u_ms=right.u_ms - left.u_ms, v_ms=right.v_ms - left.v_ms)
    assert gap.speed_ms == pytest.approx(10.0, rel=1e-6)


def test_bunkers_without_shear(standard_profile):
    with pytest.raises(NoDataError):
        bunkers_storm_motion(standard_profile)


def test_bunkers_without_wind(no_wind_profile):
    with pytest.raises(MissingProfileDataError):
        bunkers_storm_motion(no_wind_profile)


def test_helicity_positive_for_veering_winds(severe_profile):
    right, left = bunkers_storm_motion(severe_profile)
    layer = layer_agl(severe_profile, 3000.0)
    srh_rm = sr_helicity(layer, right, severe_profile)
    srh_lm = sr_helicity(layer, left, severe_profile)
    assert srh_rm > 0.0
    assert srh_rm > srh_lm


def test_helicity_zero_for_straight_hodograph(unidirectional_profile):
    layer = layer_agl(unidirectional_profile, 3000.0)
    calm = WindUV(u_ms=0.0, v_ms=0.0)
    assert sr_helicity(layer, calm, unidirectional_profile) == pytest.approx(0.0, abs=1e-6)


def test_helicity_sign_for_simple_veer(profile_factory):
    """Southerly at the ground turning westerly aloft is clockwise."""
    profile = profile_factory(
        pressures=[1000.0, 850.0, 700.0, 500.0],
        dewpoint_at=lambda z, t: t - 10.0,
        wind_at=lambda z: (20.0, 180.0 if z < 100.0 else 270.0),
    )
    layer = layer_agl(profile, 3000.0)
    assert sr_helicity(layer, WindUV(u_ms=0.0, v_ms=0.0), profile) > 0.0
