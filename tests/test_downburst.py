"""Tests for downdraft CAPE (analysis/downburst.py)."""

import numpy as np
import pytest

from sondeanalysis.analysis import thermo
from sondeanalysis.analysis.downburst import dcape, dcape_parcel
from sondeanalysis.errors import MissingProfileDataError


def test_dcape_parcel_has_lowest_theta_e(severe_profile):
    parcel = dcape_parcel(severe_profile)
    lowest = min(
        (r for r in severe_profile.rows if r.pressure_hpa >= 600.0),
        key=lambda r: thermo.equivalent_potential_temperature(r.pressure_hpa, r.temperature_c, r.dewpoint_c),
    )
    assert parcel.pressure_hpa == lowest.pressure_hpa
    assert parcel.pressure_hpa < 1000.0


def test_dcape_parcel_search_depth(severe_profile):
    assert dcape_parcel(severe_profile, depth_hpa=100.0).pressure_hpa >= 900.0


def test_dcape_of_dry_mid_levels(severe_profile):
    descent, value, downrush = dcape(severe_profile)
    assert value > 200.0
    assert downrush < severe_profile.rows[0].temperature_c
    assert downrush == pytest.approx(descent.parcel_t_c[0])


def test_descent_profile_is_surface_first(severe_profile):
    descent, _, _ = dcape(severe_profile)
    assert descent.pressure_hpa[0] == 1000.0
    assert np.all(np.diff(descent.pressure_hpa) < 0)
    assert descent.pressure_hpa[-1] == descent.parcel.pressure_hpa
    # Saturated all the way down
    assert descent.parcel_dewpoint_c == descent.parcel_t_c


def test_dcape_standard_atmosphere(standard_profile):
    _, value, downrush = dcape(standard_profile)
    assert value >= 0.0
    assert downrush < standard_profile.rows[0].temperature_c


def test_dcape_needs_dewpoints(dry_profile):
    with pytest.raises(MissingProfileDataError):
        dcape(dry_profile)
