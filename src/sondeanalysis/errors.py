"""Error kinds raised by the analysis engines.

None of these are program faults. The Analysis aggregate catches them per
derived field and leaves that field absent.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for recoverable analysis failures."""


class MissingProfileDataError(AnalysisError):
    """A required input (temperature, pressure, wind, ...) is absent where needed."""


class NoDataError(AnalysisError):
    """A structural search found no qualifying candidate."""


class NumericalFailureError(AnalysisError):
    """A root-finding or integration step failed to converge."""
