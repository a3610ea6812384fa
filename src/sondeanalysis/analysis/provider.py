"""Lookups into the provider analysis bag.

Model output often carries values this package does not compute itself
(parameterized precipitation, visibility, a weather symbol). They travel with
the Analysis as a ``dict[str, float]`` and are read through here.

Precipitation-type codes follow the WMO present-weather table: 60-65 rain,
66-67 freezing rain, 68-69 rain and snow, 70-75 snow, 79 ice pellets. Within
the rain and snow ranges even codes are showers and odd codes steady
precipitation, stepping by two from light to moderate to heavy.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Mapping, Optional

PRECIP_1HR_KEY = "Precipitation1HrMm"
CONVECTIVE_PRECIP_1HR_KEY = "ConvectivePrecip1HrMm"
VISIBILITY_KEY = "VisibilityKm"
WX_SYMBOL_CODE_KEY = "WxSymbolCode"

# Precip-type flags count as set above this value
PRECIP_TYPE_THRESHOLD = 0.5

LIGHT_MAX_MM = 2.5
MODERATE_MAX_MM = 7.6

# Snow intensity from visibility
HEAVY_SNOW_MAX_VIS_KM = 0.4
MODERATE_SNOW_MAX_VIS_KM = 0.8


class PrecipCode(IntEnum):
    """WMO present-weather style codes for the precipitation types we map."""

    NONE = 0
    RAIN = 60
    FREEZING_RAIN = 66
    RAIN_AND_SNOW = 68
    SNOW = 70
    ICE_PELLETS = 79


class Intensity(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


# Checked in this order, first flag set wins
PRECIP_TYPE_FLAGS: tuple[tuple[str, PrecipCode], ...] = (
    ("PrecipTypeRain", PrecipCode.RAIN),
    ("PrecipTypeSnow", PrecipCode.SNOW),
    ("PrecipTypeFreezingRain", PrecipCode.FREEZING_RAIN),
    ("PrecipTypeIcePellets", PrecipCode.ICE_PELLETS),
)

_STEP = {Intensity.LIGHT: 0, Intensity.MODERATE: 2, Intensity.HEAVY: 4}


class ReadOnlyBag(dict):
    """Provider bag of a frozen Analysis. Every mutation raises TypeError."""

    def _refuse(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError("provider analysis of a frozen Analysis is read-only")

    __setitem__ = __delitem__ = __ior__ = _refuse
    clear = pop = popitem = setdefault = update = _refuse

    def __reduce__(self):
        return (ReadOnlyBag, (dict(self),))


def reported_precip_code(bag: Mapping[str, float]) -> Optional[int]:
    """Code the provider reported, or None when it reported nothing.

    An explicit WxSymbolCode wins. Otherwise the first precip-type flag above
    PRECIP_TYPE_THRESHOLD decides.
    """
    code = bag.get(WX_SYMBOL_CODE_KEY)
    if code is not None:
        return int(code)
    for key, precip_code in PRECIP_TYPE_FLAGS:
        value = bag.get(key)
        if value is not None and value > PRECIP_TYPE_THRESHOLD:
            return int(precip_code)
    return None


def wx_symbol_code(bag: Mapping[str, float]) -> int:
    """Weather code from the bag, PrecipCode.NONE when nothing is reported."""
    code = reported_precip_code(bag)
    return int(PrecipCode.NONE) if code is None else code


def _intensity(amount_mm: Optional[float]) -> Optional[Intensity]:
    if amount_mm is None or amount_mm <= 0.0:
        return None
    if amount_mm < LIGHT_MAX_MM:
        return Intensity.LIGHT
    if amount_mm < MODERATE_MAX_MM:
        return Intensity.MODERATE
    return Intensity.HEAVY


def precip_intensity(bag: Mapping[str, float]) -> Optional[Intensity]:
    """Intensity class of the 1 h precipitation, None when dry or unknown."""
    return _intensity(bag.get(PRECIP_1HR_KEY))


def _snow_intensity(amount_mm: float, visibility_km: Optional[float]) -> Optional[Intensity]:
    if visibility_km is None:
        return _intensity(amount_mm)
    if visibility_km < HEAVY_SNOW_MAX_VIS_KM:
        return Intensity.HEAVY
    if visibility_km < MODERATE_SNOW_MAX_VIS_KM:
        return Intensity.MODERATE
    return Intensity.LIGHT


def adjust_for_intensity(
    code: int,
    total_mm: Optional[float],
    convective_mm: Optional[float] = None,
    visibility_km: Optional[float] = None,
) -> int:
    """Rewrite a precipitation code for the observed intensity and mode.

    Precipitation is showery when the convective part outweighs the rest.
    Snow intensity comes from visibility when there is one. Codes outside the
    rain, freezing rain, mixed and snow ranges, and any code without a positive
    1 h amount, come back unchanged.
    """
    if total_mm is None or total_mm <= 0.0:
        return code
    showers = convective_mm is not None and convective_mm > total_mm - convective_mm

    if 60 <= code <= 65:
        intensity = _intensity(total_mm)
        return (60 if showers else 61) + _STEP[intensity]
    if 70 <= code <= 75:
        intensity = _snow_intensity(total_mm, visibility_km)
        return (70 if showers else 71) + _STEP[intensity]
    if code in (66, 67):
        return 66 if _intensity(total_mm) is Intensity.LIGHT else 67
    if code in (68, 69):
        return 68 if _intensity(total_mm) is Intensity.LIGHT else 69
    return code


def intensity_adjusted(code: int, bag: Mapping[str, float]) -> int:
    """adjust_for_intensity with the amounts and visibility read from the bag."""
    return adjust_for_intensity(
        code,
        bag.get(PRECIP_1HR_KEY),
        bag.get(CONVECTIVE_PRECIP_1HR_KEY),
        bag.get(VISIBILITY_KEY),
    )
