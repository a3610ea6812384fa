"""Pydantic v2 models for fire-plume analysis."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from sondeanalysis.models.parcel import Parcel


class PlumeAscentAnalysis(BaseModel):
    """Results from lifting a fire-heated parcel.

    Heights are meters above sea level. max_height_asl_m is where the
    integrated buoyancy returns to zero, i.e. the parcel overshot the EL and
    spent all its energy; it is None when the profile ends first.
    """

    model_config = ConfigDict(frozen=True)

    parcel: Parcel
    lcl_height_asl_m: Optional[float] = None
    el_height_asl_m: Optional[float] = None
    max_height_asl_m: Optional[float] = None
    max_int_buoyancy_jkg: Optional[float] = None
    max_dry_int_buoyancy_jkg: Optional[float] = None
    level_max_int_buoyancy_m: Optional[float] = None

    def percent_wet_cape(self) -> Optional[float]:
        """Fraction of the buoyancy that came from latent heat release."""
        if self.max_int_buoyancy_jkg is None or self.max_dry_int_buoyancy_jkg is None:
            return None
        if self.max_int_buoyancy_jkg == 0.0:
            return 0.0
        return (
            self.max_int_buoyancy_jkg - self.max_dry_int_buoyancy_jkg
        ) / self.max_int_buoyancy_jkg


class BlowUpAnalysis(BaseModel):
    """How much fire heating it takes for a plume to blow up.

    delta_t_el is the heating at which the equilibrium level jumps the most,
    delta_z_el the size of that jump across a 1 °C window. The _top pair is
    the same for the plume top. delta_t_cloud is the least heating that makes
    the plume reach its LCL.
    """

    model_config = ConfigDict(frozen=True)

    starting_parcel: Parcel
    moisture_ratio: Optional[float] = None
    delta_t_cloud: Optional[float] = None
    delta_t_el: Optional[float] = None
    delta_z_el: Optional[float] = None
    delta_t_top: Optional[float] = None
    delta_z_top: Optional[float] = None
