"""Plain text summary of a filled Analysis."""

from __future__ import annotations

from typing import Optional

from sondeanalysis.analysis import Analysis
from sondeanalysis.models import BlowUpAnalysis, ParcelAscentAnalysis, WindUV

SEPARATOR = "=" * 60
MISSING = "-"


def _fmt(value: Optional[float], spec: str = ".0f", unit: str = "") -> str:
    if value is None:
        return MISSING
    return f"{value:{spec}}{unit}"


def _wind(wind: Optional[WindUV]) -> str:
    if wind is None:
        return MISSING
    return f"{wind.direction_deg:03.0f}/{wind.speed_kt:.0f}kt"


def format_analysis(anal: Analysis) -> str:
    """Format a plain-text summary, with '-' for anything not computed."""
    lines: list[str] = []
    profile = anal.profile

    lines.append(SEPARATOR)
    station = profile.station.station_id or "unknown station"
    valid = profile.valid_time.strftime("%Y-%m-%d %H:%MZ") if profile.valid_time else MISSING
    lines.append(f"  {station}  valid {valid}")
    if profile.source:
        lead = f" +{profile.lead_time_hours}h" if profile.lead_time_hours is not None else ""
        lines.append(f"  {profile.source}{lead}")
    lines.append(f"  {len(profile.rows)} levels, surface {anal.max_pressure:.0f} hPa")
    lines.append(SEPARATOR)

    lines.append("--- Parcels ---")
    lines.append("  parcel          CAPE    CIN   LCL(agl)   LFC     EL      LI")
    for label, ascent in (
        ("surface", anal.surface),
        ("mixed layer", anal.mixed_layer),
        ("most unstable", anal.most_unstable),
        ("effective", anal.effective),
        ("convective", anal.convective),
    ):
        lines.append(_format_ascent(label, ascent))
    lines.append(f"  Convective T: {_fmt(anal.convective_t_c, '.1f', 'C')}")
    lines.append("")

    lines.append("--- Moisture & fire ---")
    lines.append(f"  PWAT: {_fmt(anal.precipitable_water_mm, '.1f', ' mm')}")
    lines.append(
        f"  Haines: {_fmt(anal.haines, 'd')}"
        f"  (low {_fmt(anal.haines_low, 'd')}, mid {_fmt(anal.haines_mid, 'd')},"
        f" high {_fmt(anal.haines_high, 'd')})"
    )
    lines.append(f"  HDW: {_fmt(anal.hdw, '.0f')}")
    lines.append(
        f"  DCAPE: {_fmt(anal.dcape_jkg, '.0f', ' J/kg')}"
        f"  downrush T {_fmt(anal.downrush_t_c, '.1f', 'C')}"
    )
    lines.append(_format_blow_up("low", anal.blow_up_low))
    lines.append(_format_blow_up("high", anal.blow_up_high))
    plumes = anal.plumes
    lines.append(f"  Plumes: {len(plumes) if plumes is not None else MISSING}")
    lines.append("")

    lines.append("--- Wind ---")
    lines.append(f"  Mean 0-6 km: {_wind(anal.mean_wind)}")
    lines.append(f"  Right mover: {_wind(anal.right_mover)}  Left mover: {_wind(anal.left_mover)}")
    lines.append(
        f"  SRH 0-3 km: RM {_fmt(anal.sr_helicity_3k_rm)}  LM {_fmt(anal.sr_helicity_3k_lm)} m2/s2"
    )
    layer = anal.effective_inflow_layer
    if layer is not None:
        lines.append(
            f"  Effective inflow: {_fmt(layer.bottom.pressure_hpa)}-{_fmt(layer.top.pressure_hpa)} hPa"
            f"  SRH RM {_fmt(anal.sr_helicity_eff_rm)}  LM {_fmt(anal.sr_helicity_eff_lm)} m2/s2"
        )
    else:
        lines.append(f"  Effective inflow: {MISSING}")

    lines.append("")
    lines.append(
        f"  Precip type: provider {_fmt(anal.provider_precip_type, 'd')}"
        f"  Bourgouin {_fmt(anal.bourgouin_precip_type, 'd')}"
    )

    if anal.provider_analysis:
        lines.append("")
        lines.append("--- Provider ---")
        intensity = anal.provider_precip_intensity
        lines.append(
            f"  Wx code {anal.provider_wx_symbol_code}"
            f"  precip 1h {_fmt(anal.provider_1hr_precip, '.1f', ' mm')}"
            f" ({intensity.value if intensity else MISSING})"
            f"  conv {_fmt(anal.provider_1hr_convective_precip, '.1f', ' mm')}"
            f"  vis {_fmt(anal.provider_visibility, '.1f', ' km')}"
        )

    lines.append(SEPARATOR)
    return "\n".join(lines)


def _format_ascent(label: str, ascent: Optional[ParcelAscentAnalysis]) -> str:
    if ascent is None:
        return f"  {label:<14} {MISSING}"
    return (
        f"  {label:<14}"
        f" {_fmt(ascent.cape_jkg):>5}"
        f" {_fmt(ascent.cin_jkg):>6}"
        f" {_fmt(ascent.lcl_height_agl_m, '.0f', 'm'):>9}"
        f" {_fmt(ascent.lfc_pressure_hpa):>6}"
        f" {_fmt(ascent.el_pressure_hpa):>6}"
        f" {_fmt(ascent.lifted_index_c, '.1f'):>6}"
    )


def _format_blow_up(label: str, blow_up: Optional[BlowUpAnalysis]) -> str:
    if blow_up is None:
        return f"  Blow-up ({label}): {MISSING}"
    return (
        f"  Blow-up ({label}): EL +{_fmt(blow_up.delta_t_el, '.1f', 'C')}"
        f" / {_fmt(blow_up.delta_z_el, '.0f', 'm')}"
        f"  top +{_fmt(blow_up.delta_t_top, '.1f', 'C')} / {_fmt(blow_up.delta_z_top, '.0f', 'm')}"
        f"  cloud +{_fmt(blow_up.delta_t_cloud, '.1f', 'C')}"
    )
