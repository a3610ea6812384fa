"""Pydantic v2 models for the sounding profile and the slices taken from it."""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import datetime
from typing import Optional

import metpy.calc as mpcalc
from metpy.units import units
from pydantic import BaseModel, ConfigDict, Field, model_validator

KT_TO_MS = 1852.0 / 3600.0


class WindUV(BaseModel):
    """A wind vector in m/s (u toward the east, v toward the north)."""

    model_config = ConfigDict(frozen=True)

    u_ms: float
    v_ms: float

    @classmethod
    def from_speed_direction(cls, speed_kt: float, direction_deg: float) -> WindUV:
        """Build from a speed in knots and the direction the wind blows from."""
        u, v = mpcalc.wind_components(speed_kt * units.knot, direction_deg * units.degree)
        return cls(u_ms=float(u.m_as("m/s")), v_ms=float(v.m_as("m/s")))

    @property
    def speed_ms(self) -> float:
        return math.hypot(self.u_ms, self.v_ms)

    @property
    def speed_kt(self) -> float:
        return self.speed_ms / KT_TO_MS

    @property
    def direction_deg(self) -> float:
        """Direction the wind blows from, degrees in [0, 360)."""
        if self.u_ms == 0.0 and self.v_ms == 0.0:
            return 0.0
        return math.degrees(math.atan2(-self.u_ms, -self.v_ms)) % 360


class DataRow(BaseModel):
    """One level of a sounding. Every field may be missing."""

    model_config = ConfigDict(frozen=True)

    pressure_hpa: Optional[float] = None
    height_m: Optional[float] = None
    temperature_c: Optional[float] = None
    dewpoint_c: Optional[float] = None
    wind_speed_kt: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    omega_pa_s: Optional[float] = None
    cloud_fraction_pct: Optional[float] = None

    def wind_uv(self) -> Optional[WindUV]:
        """Wind vector for this row, or None when speed or direction is missing."""
        if self.wind_speed_kt is None or self.wind_direction_deg is None:
            return None
        return WindUV.from_speed_direction(self.wind_speed_kt, self.wind_direction_deg)


class StationInfo(BaseModel):
    """Where the sounding was taken."""

    model_config = ConfigDict(frozen=True)

    station_id: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation_m: Optional[float] = None


class Profile(BaseModel):
    """An immutable vertical profile, ordered from the surface upward.

    Rows that carry a pressure must be strictly decreasing in pressure.
    """

    model_config = ConfigDict(frozen=True)

    rows: tuple[DataRow, ...] = ()
    station: StationInfo = Field(default_factory=StationInfo)
    valid_time: Optional[datetime] = None
    lead_time_hours: Optional[int] = None
    source: Optional[str] = None

    @model_validator(mode="after")
    def _validate_pressure_order(self) -> Profile:
        last = None
        for row in self.rows:
            if row.pressure_hpa is None:
                continue
            if last is not None and row.pressure_hpa >= last:
                raise ValueError(
                    f"Rows must be ordered by decreasing pressure ({row.pressure_hpa} after {last})"
                )
            last = row.pressure_hpa
        return self

    def bottom_up(self) -> Iterator[DataRow]:
        return iter(self.rows)

    def top_down(self) -> Iterator[DataRow]:
        return reversed(self.rows)

    @property
    def max_pressure_hpa(self) -> Optional[float]:
        """Pressure of the lowest row that has one."""
        return next((r.pressure_hpa for r in self.rows if r.pressure_hpa is not None), None)

    @property
    def surface_height_m(self) -> Optional[float]:
        """Station elevation, falling back to the lowest row height."""
        if self.station.elevation_m is not None:
            return self.station.elevation_m
        return next((r.height_m for r in self.rows if r.height_m is not None), None)


class Layer(BaseModel):
    """A vertical slab between two (possibly interpolated) rows."""

    model_config = ConfigDict(frozen=True)

    bottom: DataRow
    top: DataRow

    @model_validator(mode="after")
    def _validate_order(self) -> Layer:
        pb, pt = self.bottom.pressure_hpa, self.top.pressure_hpa
        if pb is not None and pt is not None and pb < pt:
            raise ValueError(f"Layer bottom ({pb} hPa) is above its top ({pt} hPa)")
        return self

    @property
    def depth_hpa(self) -> Optional[float]:
        if self.bottom.pressure_hpa is None or self.top.pressure_hpa is None:
            return None
        return self.bottom.pressure_hpa - self.top.pressure_hpa

    @property
    def depth_m(self) -> Optional[float]:
        if self.bottom.height_m is None or self.top.height_m is None:
            return None
        return self.top.height_m - self.bottom.height_m
