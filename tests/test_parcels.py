"""Tests for parcel selection (analysis/parcels.py)."""

import pytest

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.ascent import lift_parcel
from sondeanalysis.analysis.parcels import (
    average_parcel,
    mixed_layer_parcel,
    most_unstable_parcel,
    robust_convective_parcel_ascent,
    surface_parcel,
)
from sondeanalysis.errors import AnalysisError, NoDataError
from sondeanalysis.models import DataRow, Layer, Profile


def test_surface_parcel_is_lowest_complete_row(standard_profile):
    parcel = surface_parcel(standard_profile)
    row = standard_profile.rows[0]
    assert parcel.pressure_hpa == row.pressure_hpa
    assert parcel.temperature_c == row.temperature_c
    assert parcel.dewpoint_c == row.dewpoint_c


def test_surface_parcel_skips_rows_without_dewpoint(standard_profile):
    rows = list(standard_profile.rows)
    rows[0] = rows[0].model_copy(update={"dewpoint_c": None})
    parcel = surface_parcel(Profile(rows=rows))
    assert parcel.pressure_hpa == 950.0


def test_surface_parcel_without_moisture(dry_profile):
    with pytest.raises(NoDataError):
        surface_parcel(dry_profile)


def test_mixed_layer_of_well_mixed_air(fire_profile):
    """Constant theta below the cap gives back the surface temperature."""
    parcel = mixed_layer_parcel(fire_profile)
    surface = fire_profile.rows[0]
    assert parcel.pressure_hpa == surface.pressure_hpa
    assert parcel.temperature_c == pytest.approx(surface.temperature_c, abs=0.3)
    # Constant dew point means mixing ratio grows with height, so the mean is moister
    assert parcel.dewpoint_c > surface.dewpoint_c


def test_mixed_layer_of_stable_air_is_warmer(standard_profile):
    """Theta increases with height, so the layer mean is warmer than the surface."""
    parcel = mixed_layer_parcel(standard_profile)
    assert parcel.pressure_hpa == 1000.0
    assert parcel.temperature_c > standard_profile.rows[0].temperature_c


def test_mixed_layer_without_moisture(dry_profile):
    with pytest.raises(NoDataError):
        mixed_layer_parcel(dry_profile)


@pytest.mark.parametrize("missing", ["temperature_c", "dewpoint_c"])
def test_mixed_layer_needs_the_surface_row(fire_profile, missing):
    """A surface row without T or Td does not shift the mixed layer upward."""
    rows = list(fire_profile.rows)
    rows[0] = rows[0].model_copy(update={missing: None})
    with pytest.raises(NoDataError):
        mixed_layer_parcel(Profile(rows=rows, station=fire_profile.station))


def test_mixed_layer_spans_depth_from_surface(standard_profile):
    """Mixing only the lowest 50 hPa is cooler than mixing 100 hPa of stable air."""
    shallow = mixed_layer_parcel(standard_profile, depth_hpa=50.0)
    deep = mixed_layer_parcel(standard_profile)
    assert shallow.pressure_hpa == deep.pressure_hpa == 1000.0
    assert shallow.temperature_c < deep.temperature_c


def test_average_parcel_on_single_level(standard_profile):
    row = standard_profile.rows[2]
    parcel = average_parcel(standard_profile, Layer(bottom=row, top=row))
    assert parcel.pressure_hpa == row.pressure_hpa
    assert parcel.temperature_c == pytest.approx(row.temperature_c, abs=1e-6)
    assert parcel.dewpoint_c == pytest.approx(row.dewpoint_c, abs=1e-6)


def test_average_parcel_sits_at_layer_bottom(severe_profile):
    layer = Layer(bottom=severe_profile.rows[1], top=severe_profile.rows[4])
    parcel = average_parcel(severe_profile, layer)
    assert parcel.pressure_hpa == 950.0


def test_average_parcel_outside_moist_data(standard_profile):
    layer = Layer(bottom=DataRow(pressure_hpa=1020.0), top=DataRow(pressure_hpa=900.0))
    with pytest.raises(NoDataError):
        average_parcel(standard_profile, layer)


def test_most_unstable_beats_surface(severe_profile):
    mu = lift_parcel(most_unstable_parcel(severe_profile), severe_profile)
    sfc = lift_parcel(surface_parcel(severe_profile), severe_profile)
    assert mu.cape_jkg >= sfc.cape_jkg


def test_most_unstable_has_highest_theta_e(standard_profile):
    parcel = most_unstable_parcel(standard_profile)
    candidates = [
        r for r in standard_profile.rows if r.pressure_hpa >= 700.0
    ]
    best = max(
        candidates,
        key=lambda r: thermo.equivalent_potential_temperature(r.pressure_hpa, r.temperature_c, r.dewpoint_c),
    )
    assert parcel.pressure_hpa == best.pressure_hpa


def test_most_unstable_needs_temperature(height_only_profile):
    with pytest.raises(AnalysisError):
        most_unstable_parcel(height_only_profile)


def test_convective_parcel_has_no_cin(severe_profile):
    ascent = robust_convective_parcel_ascent(severe_profile)
    surface = surface_parcel(severe_profile)
    assert ascent.cape_jkg > 0.0
    assert abs(ascent.cin_jkg) < 1.0
    assert ascent.parcel.temperature_c >= surface.temperature_c
    assert ascent.parcel.dewpoint_c == surface.dewpoint_c


def test_convective_parcel_without_moisture(dry_profile):
    with pytest.raises(NoDataError):
        robust_convective_parcel_ascent(dry_profile)
