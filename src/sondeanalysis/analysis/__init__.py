"""Derived-quantity engines and the Analysis aggregate.

Public API: build an Analysis from a Profile and call
fill_in_missing_analysis_mut() to compute every index the profile supports.

Usage:
    from sondeanalysis.analysis import Analysis

    anal = Analysis(profile=profile)
    anal.fill_in_missing_analysis_mut()
    anal.freeze()
"""

from sondeanalysis.analysis.aggregate import Analysis  # noqa: F401
from sondeanalysis.analysis.provider import Intensity, PrecipCode  # noqa: F401
from sondeanalysis.analysis.steps import FILL_STEPS, FILLED_FIELDS, FillStep  # noqa: F401
