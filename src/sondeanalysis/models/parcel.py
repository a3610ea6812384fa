"""Pydantic v2 models for parcels and their lifted trajectories."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class Parcel(BaseModel):
    """Origin thermodynamic state of an air parcel."""

    model_config = ConfigDict(frozen=True)

    pressure_hpa: float
    temperature_c: float
    dewpoint_c: float

    def heated(self, dt_c: float) -> Parcel:
        """Same parcel with its temperature raised by dt_c."""
        return self.model_copy(update={"temperature_c": self.temperature_c + dt_c})

    def __str__(self) -> str:
        return (
            f"Parcel: {self.temperature_c:.2f} °C / {self.dewpoint_c:.2f} °C "
            f"{self.pressure_hpa:.0f} hPa"
        )


class ParcelProfile(BaseModel):
    """Simulated trajectory of a lifted (or descending) parcel.

    Parallel tuples ordered by decreasing pressure. Virtual temperatures are
    what buoyancy is computed from.
    """

    model_config = ConfigDict(frozen=True)

    parcel: Parcel
    pressure_hpa: tuple[float, ...]
    height_m: tuple[float, ...]
    parcel_t_c: tuple[float, ...]
    parcel_dewpoint_c: tuple[float, ...]
    parcel_virtual_t_c: tuple[float, ...]
    environment_virtual_t_c: tuple[float, ...]

    @model_validator(mode="after")
    def _validate_lengths(self) -> ParcelProfile:
        n = len(self.pressure_hpa)
        lengths = {
            len(self.height_m),
            len(self.parcel_t_c),
            len(self.parcel_dewpoint_c),
            len(self.parcel_virtual_t_c),
            len(self.environment_virtual_t_c),
        }
        if lengths != {n}:
            raise ValueError("ParcelProfile arrays must all have the same length")
        return self

    def __len__(self) -> int:
        return len(self.pressure_hpa)

    def buoyancy_c(self) -> list[float]:
        """Parcel minus environment virtual temperature at each level."""
        return [
            p - e for p, e in zip(self.parcel_virtual_t_c, self.environment_virtual_t_c)
        ]


class ParcelAscentAnalysis(BaseModel):
    """Scalars derived from a lifted parcel. Each may be missing."""

    model_config = ConfigDict(frozen=True)

    parcel: Parcel
    profile: ParcelProfile

    cape_jkg: Optional[float] = None
    cin_jkg: Optional[float] = None
    lcl_pressure_hpa: Optional[float] = None
    lcl_temperature_c: Optional[float] = None
    lcl_height_agl_m: Optional[float] = None
    lfc_pressure_hpa: Optional[float] = None
    lfc_virtual_t_c: Optional[float] = None
    el_pressure_hpa: Optional[float] = None
    el_height_asl_m: Optional[float] = None
    el_temperature_c: Optional[float] = None
    lifted_index_c: Optional[float] = None  # 500 hPa environment minus parcel
