"""Analysis settings loading from YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_ENV_VAR = "SONDEANALYSIS_CONFIG"
SECTION = "analysis"


class AnalysisSettings(BaseModel):
    """Thresholds and search depths used while filling an Analysis.

    Defaults are the conventional values; a YAML file only needs to list the
    ones it changes.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    mixed_layer_depth_hpa: float = Field(default=100.0, gt=0)
    most_unstable_depth_hpa: float = Field(default=300.0, gt=0)
    dcape_depth_hpa: float = Field(default=400.0, gt=0)

    # Effective inflow layer
    inflow_cape_min_jkg: float = 100.0
    inflow_cin_min_jkg: float = -250.0
    inflow_search_depth_hpa: float = Field(default=400.0, gt=0)

    # Kinematics
    bunkers_deviation_ms: float = 7.5
    mean_wind_depth_m: float = Field(default=6000.0, gt=0)
    helicity_depth_m: float = Field(default=3000.0, gt=0)

    # Fire plumes
    blow_up_min_jump_m: float = 500.0
    plume_dt_min_c: float = 0.1
    plume_dt_max_c: float = 20.0
    plume_dt_step_c: float = Field(default=0.1, gt=0)
    moisture_ratio_low: float = Field(default=8.0, gt=0)
    moisture_ratio_high: float = Field(default=12.0, gt=0)

    # Batch driver
    max_workers: Optional[int] = Field(default=None, ge=1)


def load_settings(path: Path | str | None = None) -> AnalysisSettings:
    """Load settings from the ``analysis`` section of a YAML file.

    Args:
        path: YAML file. None returns the defaults.

    Raises:
        ValueError: the section is not a mapping or has unknown keys.
    """
    if path is None:
        return AnalysisSettings()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    section = data.get(SECTION) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{path}: '{SECTION}' must be a mapping")
    return AnalysisSettings(**section)


def settings_path_from_env() -> Path | None:
    """Settings file named by SONDEANALYSIS_CONFIG, if set."""
    value = os.environ.get(CONFIG_ENV_VAR)
    return Path(value) if value else None
