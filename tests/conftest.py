"""Shared test fixtures: synthetic soundings built from analytic profiles."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from sondeanalysis.analysis import Analysis
from sondeanalysis.config import AnalysisSettings
from sondeanalysis.models import DataRow, Profile, StationInfo

RD = 287.04749
G = 9.80665
KAPPA = 0.2857

STANDARD_PRESSURES = [float(p) for p in range(1000, 99, -50)]


def _standard_temperature(z_agl, p):
    """ICAO-like lapse: 15 °C at the ground, 6.5 K/km, isothermal above 11 km."""
    return 15.0 - 6.5 * min(z_agl, 11000.0) / 1000.0


def _heights(pressures, temperature_at, z0):
    """Hydrostatic heights (and temperatures) for the given pressure levels."""
    t0 = temperature_at(0.0, pressures[0])
    levels = [(pressures[0], z0, t0)]
    for p in pressures[1:]:
        p_prev, z_prev, t_prev = levels[-1]
        dz_per_k = RD / G * math.log(p_prev / p)
        z = z_prev + dz_per_k * (t_prev + 273.15)
        for _ in range(4):
            t = temperature_at(z - z0, p)
            z = z_prev + dz_per_k * (0.5 * (t_prev + t) + 273.15)
        levels.append((p, z, temperature_at(z - z0, p)))
    return levels


def build_profile(
    pressures=None,
    temperature_at=_standard_temperature,
    dewpoint_at=None,
    wind_at=None,
    elevation_m=0.0,
    station_id="TEST",
    with_temperature=True,
    valid_time=None,
):
    """Profile from analytic functions of height above ground.

    temperature_at(z, p) gives °C, dewpoint_at(z, t) gives °C and
    wind_at(z) gives (speed_kt, direction_deg). A None function leaves that
    field missing on every row.
    """
    pressures = pressures or STANDARD_PRESSURES
    rows = []
    for p, z, t in _heights(pressures, temperature_at, elevation_m):
        z_agl = z - elevation_m
        speed = direction = None
        if wind_at is not None:
            speed, direction = wind_at(z_agl)
        rows.append(DataRow(
            pressure_hpa=p,
            height_m=round(z, 1),
            temperature_c=t if with_temperature else None,
            dewpoint_c=dewpoint_at(z_agl, t) if with_temperature and dewpoint_at else None,
            wind_speed_kt=speed,
            wind_direction_deg=direction,
        ))
    return Profile(
        rows=rows,
        station=StationInfo(station_id=station_id, lat=47.0, lon=8.0, elevation_m=elevation_m),
        valid_time=valid_time,
    )


def _fire_theta(z_agl):
    """Well mixed to 1.5 km, capped by an 8 K inversion, nearly neutral to 5.5 km."""
    if z_agl <= 1500.0:
        return 308.0
    if z_agl <= 2000.0:
        return 308.0 + 8.0 * (z_agl - 1500.0) / 500.0
    if z_agl <= 5500.0:
        return 316.0 + 0.2 * (z_agl - 2000.0) / 1000.0
    return 316.7 + 6.0 * (z_agl - 5500.0) / 1000.0


def build_height_grid_profile(theta_at, dewpoint_at, top_m, step_m, wind_at=None, station_id="FIRE"):
    """Profile on a regular height grid from a potential temperature profile."""
    rows = []
    p = 1000.0
    t_prev = theta_at(0.0) - 273.15
    for i in range(int(top_m // step_m) + 1):
        z = i * step_m
        if i > 0:
            t = t_prev
            for _ in range(4):
                p_new = p * math.exp(-G * step_m / (RD * (0.5 * (t_prev + t) + 273.15)))
                t = theta_at(z) * (p_new / 1000.0) ** KAPPA - 273.15
            p = p_new
        t = theta_at(z) * (p / 1000.0) ** KAPPA - 273.15
        speed = direction = None
        if wind_at is not None:
            speed, direction = wind_at(z)
        rows.append(DataRow(
            pressure_hpa=round(p, 3),
            height_m=z,
            temperature_c=t,
            dewpoint_c=dewpoint_at(z, t),
            wind_speed_kt=speed,
            wind_direction_deg=direction,
        ))
        t_prev = t
    return Profile(
        rows=rows,
        station=StationInfo(station_id=station_id, elevation_m=0.0),
    )


@pytest.fixture(scope="session")
def fast_settings():
    """Default settings with a coarse plume heating step, starting on its grid."""
    return AnalysisSettings(plume_dt_step_c=0.5, plume_dt_min_c=0.5)


@pytest.fixture
def profile_factory():
    return build_profile


@pytest.fixture(scope="session")
def standard_profile():
    """Standard atmosphere, Td 15 °C below T, calm."""
    return build_profile(
        dewpoint_at=lambda z, t: t - 15.0,
        wind_at=lambda z: (0.0, 0.0),
        station_id="STD",
        valid_time=datetime(2026, 7, 1, 12, tzinfo=timezone.utc),
    )


@pytest.fixture(scope="session")
def height_only_profile():
    """Only pressure and height on every row."""
    return build_profile(with_temperature=False, station_id="PZ")


@pytest.fixture(scope="session")
def dry_profile():
    """Temperatures without any dew point or wind."""
    return build_profile(station_id="DRY")


@pytest.fixture(scope="session")
def no_wind_profile():
    """Temperature and dew point but no wind at all."""
    return build_profile(dewpoint_at=lambda z, t: t - 10.0, station_id="NOWIND")


def _severe_temperature(z_agl, p):
    return 30.0 - 7.5 * min(z_agl, 12000.0) / 1000.0


def _severe_wind(z_agl):
    """Southerly 10 kt at the ground veering to westerly and strengthening."""
    z_km = min(z_agl, 10000.0) / 1000.0
    return 10.0 + 8.0 * z_km, 180.0 + 15.0 * min(z_km, 6.0)


@pytest.fixture(scope="session")
def severe_profile():
    """Warm moist boundary layer under steep lapse rates, veering shear."""
    return build_profile(
        temperature_at=_severe_temperature,
        dewpoint_at=lambda z, t: t - (8.0 + 2.5 * z / 1000.0),
        wind_at=_severe_wind,
        station_id="SVR",
        valid_time=datetime(2026, 6, 20, 0, tzinfo=timezone.utc),
    )


@pytest.fixture(scope="session")
def fire_profile():
    """Deep dry mixed layer under a strong cap."""
    return build_height_grid_profile(
        _fire_theta,
        dewpoint_at=lambda z, t: -5.0 if z <= 1500.0 else t - 35.0,
        top_m=14000.0,
        step_m=500.0,
        wind_at=lambda z: (15.0, 240.0),
    )


@pytest.fixture(scope="session")
def isothermal_profile():
    """Isothermal and very dry: plumes rise smoothly and never condense."""
    rows = []
    p = 1000.0
    for i in range(61):
        z = i * 100.0
        if i > 0:
            p = p * math.exp(-G * 100.0 / (RD * 288.15))
        rows.append(DataRow(
            pressure_hpa=round(p, 3), height_m=z, temperature_c=15.0, dewpoint_c=-40.0,
        ))
    return Profile(rows=rows, station=StationInfo(station_id="ISO", elevation_m=0.0))


@pytest.fixture(scope="session")
def filled_standard(standard_profile, fast_settings):
    return Analysis(profile=standard_profile).fill_in_missing_analysis(fast_settings)


@pytest.fixture(scope="session")
def filled_severe(severe_profile, fast_settings):
    return Analysis(profile=severe_profile).fill_in_missing_analysis(fast_settings)
