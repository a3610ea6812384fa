"""Tests for fire plumes and blow-up analysis (analysis/fire.py)."""

import pytest

from sondeanalysis.analysis import fire, thermo
from sondeanalysis.analysis.fire import blow_up, calc_plumes, heated_parcel, lift_plume_parcel
from sondeanalysis.analysis.parcels import mixed_layer_parcel
from sondeanalysis.errors import AnalysisError, NoDataError
from sondeanalysis.models import Parcel


def test_heated_parcel_without_moisture():
    parcel = Parcel(pressure_hpa=1000.0, temperature_c=30.0, dewpoint_c=5.0)
    hot = heated_parcel(parcel, 4.0, None)
    assert hot.temperature_c == 34.0
    assert hot.dewpoint_c == 5.0


def test_heated_parcel_adds_moisture():
    """A ratio of 10 adds 1 g/kg for 10 °C of heating."""
    parcel = Parcel(pressure_hpa=1000.0, temperature_c=30.0, dewpoint_c=5.0)
    hot = heated_parcel(parcel, 10.0, 10.0)
    added = thermo.mixing_ratio(hot.dewpoint_c, 1000.0) - thermo.mixing_ratio(5.0, 1000.0)
    assert added == pytest.approx(0.001, rel=0.02)
    assert hot.temperature_c == 40.0


def test_weak_plume_stays_under_cap(fire_profile):
    start = mixed_layer_parcel(fire_profile)
    plume = lift_plume_parcel(start.heated(3.0), fire_profile)
    assert plume.el_height_asl_m is not None
    assert 1500.0 < plume.el_height_asl_m < 2100.0
    assert plume.max_height_asl_m > plume.el_height_asl_m


def test_strong_plume_breaks_the_cap(fire_profile):
    start = mixed_layer_parcel(fire_profile)
    plume = lift_plume_parcel(start.heated(12.0), fire_profile)
    assert plume.el_height_asl_m > 5000.0


def test_plume_buoyancy_accounting(fire_profile):
    start = mixed_layer_parcel(fire_profile)
    plume = lift_plume_parcel(heated_parcel(start, 12.0, 8.0), fire_profile)
    assert plume.max_int_buoyancy_jkg > 0.0
    assert plume.max_dry_int_buoyancy_jkg <= plume.max_int_buoyancy_jkg
    assert 0.0 <= plume.percent_wet_cape() <= 1.0
    assert plume.level_max_int_buoyancy_m > 2000.0


def test_calc_plumes_heating_steps(fire_profile):
    plumes = calc_plumes(fire_profile, dt_min=1.0, dt_max=3.0, dt_step=1.0)
    assert len(plumes) == 3
    temps = [p.parcel.temperature_c for p in plumes]
    assert temps[1] - temps[0] == pytest.approx(1.0)
    assert temps[2] - temps[1] == pytest.approx(1.0)


def test_calc_plumes_with_moisture(fire_profile):
    dry = calc_plumes(fire_profile, dt_min=2.0, dt_max=2.0, dt_step=1.0)
    wet = calc_plumes(fire_profile, dt_min=2.0, dt_max=2.0, dt_step=1.0, moisture_ratio=8.0)
    assert wet[0].parcel.dewpoint_c > dry[0].parcel.dewpoint_c


def test_calc_plumes_need_moisture(dry_profile):
    with pytest.raises(AnalysisError):
        calc_plumes(dry_profile, dt_min=1.0, dt_max=2.0, dt_step=1.0)


def test_blow_up_at_the_cap(fire_profile):
    """Heating enough to beat the 8 K inversion makes the plume jump."""
    result = blow_up(fire_profile, moisture_ratio=8.0, dt_step=0.25)
    assert result.starting_parcel == mixed_layer_parcel(fire_profile)
    assert result.moisture_ratio == 8.0
    assert max(result.delta_z_el or 0.0, result.delta_z_top or 0.0) >= 500.0
    assert 6.0 <= result.delta_t_el <= 12.0


def test_blow_up_cloud_heating(fire_profile):
    result = blow_up(fire_profile, moisture_ratio=8.0, dt_step=0.25)
    # Only plumes that break the cap reach their condensation level
    assert result.delta_t_cloud is not None
    assert 6.0 <= result.delta_t_cloud <= 20.0


def test_no_blow_up_in_smooth_stable_air(isothermal_profile):
    with pytest.raises(NoDataError):
        blow_up(isothermal_profile, dt_step=0.5)


def test_blow_up_needs_moisture(dry_profile):
    with pytest.raises(AnalysisError):
        blow_up(dry_profile, dt_step=1.0)


def test_plumes_reuse_the_blow_up_family(fire_profile, monkeypatch):
    """calc_plumes on the blow-up heating grid lifts nothing new."""
    fire._plume_family.cache_clear()
    lifted = []
    original = fire._lift_plume

    def counting(parcel, env):
        lifted.append(parcel.temperature_c)
        return original(parcel, env)

    monkeypatch.setattr(fire, "_lift_plume", counting)
    blow_up(fire_profile, moisture_ratio=8.0, dt_step=0.5)
    assert len(lifted) == 41
    plumes = calc_plumes(fire_profile, dt_min=0.5, moisture_ratio=8.0, dt_step=0.5)
    assert len(lifted) == 41
    assert len(plumes) == 40
    fire._plume_family.cache_clear()


def test_off_grid_plumes_are_lifted_directly(fire_profile):
    plumes = calc_plumes(fire_profile, dt_min=0.25, dt_max=1.25, dt_step=0.5)
    start = mixed_layer_parcel(fire_profile)
    assert [p.parcel.temperature_c - start.temperature_c for p in plumes] == pytest.approx([0.25, 0.75, 1.25])
