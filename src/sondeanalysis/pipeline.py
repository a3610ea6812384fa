"""Batch driver: load soundings, fill their analyses in parallel, keep order.

Each Analysis is filled by exactly one worker. Results come back in
completion order, tagged with their submission index, and are put back in
input order before they are returned frozen.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from sondeanalysis.analysis import Analysis
from sondeanalysis.config import AnalysisSettings
from sondeanalysis.models import Profile

logger = logging.getLogger(__name__)


class BatchItem(BaseModel):
    """One entry of a batch input file."""

    profile: Profile
    provider_analysis: dict[str, float] = Field(default_factory=dict)


_BATCH_ADAPTER = TypeAdapter(list[BatchItem])


def load_batch(path: Path | str) -> list[Analysis]:
    """Read a JSON list of {"profile": ..., "provider_analysis": ...} objects."""
    items = _BATCH_ADAPTER.validate_json(Path(path).read_text())
    return [
        Analysis(profile=item.profile, provider_analysis=item.provider_analysis)
        for item in items
    ]


def _fill_one(
    index: int, analysis: Analysis, settings: AnalysisSettings,
) -> tuple[int, Analysis]:
    """Worker entry point, module level so process pools can pickle it."""
    return index, analysis.fill_in_missing_analysis(settings)


def fill_batch(
    analyses: list[Analysis],
    settings: AnalysisSettings | None = None,
    max_workers: int | None = None,
    use_processes: bool = True,
) -> list[Analysis]:
    """Fill every analysis on a worker pool and return them frozen, in input order.

    An item whose worker fails is logged and returned unfilled in its slot.
    """
    settings = settings or AnalysisSettings()
    max_workers = max_workers or settings.max_workers
    if not analyses:
        return []

    results: list[Analysis | None] = [None] * len(analyses)
    pool_cls: type[Executor] = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
    logger.info(
        "Filling %d analyses on %s (max_workers=%s)",
        len(analyses), pool_cls.__name__, max_workers or "default",
    )

    with pool_cls(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_fill_one, i, anal, settings): i
            for i, anal in enumerate(analyses)
        }
        for future in as_completed(futures):
            i = futures[future]
            try:
                index, filled = future.result()
                results[index] = filled
            except Exception:
                logger.warning("Analysis %d failed to fill", i, exc_info=True)

    done = []
    for i, filled in enumerate(results):
        if filled is None:
            filled = analyses[i].model_copy()
        done.append(filled.freeze())
    logger.info("Filled %d analyses", len(done))
    return done


def sort_by_valid_time(analyses: list[Analysis]) -> list[Analysis]:
    """Order by profile valid time, analyses without one last."""
    def key(anal: Analysis) -> tuple[bool, datetime]:
        vt = anal.profile.valid_time
        if vt is None:
            return (True, datetime.min.replace(tzinfo=timezone.utc))
        if vt.tzinfo is None:
            vt = vt.replace(tzinfo=timezone.utc)
        return (False, vt)

    return sorted(analyses, key=key)
