"""The Analysis aggregate: one profile plus everything derived from it."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, PrivateAttr

from sondeanalysis.analysis import provider
from sondeanalysis.analysis.steps import FILL_STEPS
from sondeanalysis.config import AnalysisSettings
from sondeanalysis.models import (
    BlowUpAnalysis,
    Layer,
    Parcel,
    ParcelAscentAnalysis,
    ParcelProfile,
    PlumeAscentAnalysis,
    Profile,
    WindUV,
)

logger = logging.getLogger(__name__)


class Analysis(BaseModel):
    """A profile and its derived indices.

    Every derived field starts as None and is filled at most once by
    fill_in_missing_analysis_mut(). A field that could not be computed stays
    None; it is never replaced by a zero. After freeze() the object is
    read-only and can be shared freely.
    """

    profile: Profile
    provider_analysis: dict[str, float] = Field(default_factory=dict)

    # Independent scalars
    precipitable_water_mm: Optional[float] = None
    haines: Optional[int] = None
    haines_low: Optional[int] = None
    haines_mid: Optional[int] = None
    haines_high: Optional[int] = None
    hdw: Optional[float] = None

    # Downburst
    dcape_jkg: Optional[float] = None
    downrush_t_c: Optional[float] = None
    downburst_profile: Optional[ParcelProfile] = None

    # Parcel ascents
    mixed_layer: Optional[ParcelAscentAnalysis] = None
    most_unstable: Optional[ParcelAscentAnalysis] = None
    surface: Optional[ParcelAscentAnalysis] = None
    convective: Optional[ParcelAscentAnalysis] = None
    convective_t_c: Optional[float] = None
    effective: Optional[ParcelAscentAnalysis] = None

    # Kinematics
    right_mover: Optional[WindUV] = None
    left_mover: Optional[WindUV] = None
    mean_wind: Optional[WindUV] = None
    sr_helicity_3k_rm: Optional[float] = None
    sr_helicity_3k_lm: Optional[float] = None
    effective_inflow_layer: Optional[Layer] = None
    sr_helicity_eff_rm: Optional[float] = None
    sr_helicity_eff_lm: Optional[float] = None

    # Fire weather
    blow_up_low: Optional[BlowUpAnalysis] = None
    blow_up_high: Optional[BlowUpAnalysis] = None
    blow_up_start_parcel: Optional[Parcel] = None
    plumes_low: Optional[tuple[PlumeAscentAnalysis, ...]] = None
    plumes_high: Optional[tuple[PlumeAscentAnalysis, ...]] = None

    # Precipitation type, intensity-adjusted WMO codes
    provider_precip_type: Optional[int] = None
    bourgouin_precip_type: Optional[int] = None

    _frozen: bool = PrivateAttr(default=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if name != "_frozen" and self._frozen:
            raise TypeError(f"Analysis is frozen, cannot set '{name}'")
        super().__setattr__(name, value)

    # --- Lifecycle ---

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Analysis:
        """Make this analysis read-only and return it.

        The provider bag becomes a ReadOnlyBag. Every other field is a frozen
        model, a tuple or a scalar already.
        """
        if not self._frozen:
            self.provider_analysis = provider.ReadOnlyBag(self.provider_analysis)
            self._frozen = True
        return self

    def _thawed_copy(self, update: dict[str, Any] | None = None) -> Analysis:
        update = {"provider_analysis": dict(self.provider_analysis), **(update or {})}
        copy = self.model_copy(update=update)
        copy._frozen = False
        return copy

    def with_provider_analysis(self, provider_analysis: Mapping[str, float]) -> Analysis:
        """Copy of this analysis carrying a different provider bag."""
        return self._thawed_copy({
            "provider_analysis": dict(provider_analysis),
            "provider_precip_type": None,
            "bourgouin_precip_type": None,
        })

    def fill_in_missing_analysis_mut(self, settings: AnalysisSettings | None = None) -> None:
        """Compute every absent field that can be computed, in dependency order.

        A step runs only when at least one of its fields is absent and all the
        fields it requires are present. Its results are assigned together,
        and only to absent fields. Failures are logged at DEBUG and leave the
        step's fields absent; a failing step never raises. A frozen analysis
        is left as it is.
        """
        if self._frozen:
            logger.debug("Analysis is frozen, nothing to fill")
            return
        settings = settings or AnalysisSettings()

        for step in FILL_STEPS:
            if all(getattr(self, f) is not None for f in step.fields):
                continue
            inputs = {name: getattr(self, name) for name in step.requires}
            missing = [name for name, value in inputs.items() if value is None]
            if missing:
                logger.debug("Skipping %s, missing %s", step.name, ", ".join(missing))
                continue

            try:
                values = step.compute(self.profile, inputs, settings)
            except Exception:
                logger.debug("%s failed", step.name, exc_info=True)
                continue

            if any(values.get(f) is None for f in step.fields):
                logger.debug("%s found nothing", step.name)
                continue
            for f in step.fields:
                if getattr(self, f) is None:
                    setattr(self, f, values[f])

    def fill_in_missing_analysis(self, settings: AnalysisSettings | None = None) -> Analysis:
        """Filled copy of this analysis; the original is left untouched."""
        copy = self._thawed_copy()
        copy.fill_in_missing_analysis_mut(settings)
        return copy

    # --- Accessors ---

    @property
    def max_pressure(self) -> float:
        """Pressure of the lowest level, 0.0 when the profile has none."""
        p = self.profile.max_pressure_hpa
        return p if p is not None else 0.0

    @property
    def plumes(self) -> Optional[tuple[PlumeAscentAnalysis, ...]]:
        return self.plumes_low

    @property
    def provider_1hr_precip(self) -> Optional[float]:
        return self.provider_analysis.get(provider.PRECIP_1HR_KEY)

    @property
    def provider_1hr_convective_precip(self) -> Optional[float]:
        return self.provider_analysis.get(provider.CONVECTIVE_PRECIP_1HR_KEY)

    @property
    def provider_visibility(self) -> Optional[float]:
        return self.provider_analysis.get(provider.VISIBILITY_KEY)

    @property
    def provider_wx_symbol_code(self) -> int:
        return provider.wx_symbol_code(self.provider_analysis)

    @property
    def provider_precip_intensity(self) -> Optional[provider.Intensity]:
        return provider.precip_intensity(self.provider_analysis)
