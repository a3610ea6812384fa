"""Pydantic v2 models for sondeanalysis.

Re-exports from submodules so ``from sondeanalysis.models import X`` keeps working.
"""

from sondeanalysis.models.fire import (  # noqa: F401
    BlowUpAnalysis,
    PlumeAscentAnalysis,
)
from sondeanalysis.models.parcel import (  # noqa: F401
    Parcel,
    ParcelAscentAnalysis,
    ParcelProfile,
)
from sondeanalysis.models.sounding import (  # noqa: F401
    KT_TO_MS,
    DataRow,
    Layer,
    Profile,
    StationInfo,
    WindUV,
)
