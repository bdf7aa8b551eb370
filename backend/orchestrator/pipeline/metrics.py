"""
Final status and aggregate metrics for a finished step loop.

The quality, source and article extractors are best-effort lookups by
known field names.  They never raise; missing data counts as zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from orchestrator.core.constants import (
    ARTICLE_COUNT_FIELDS,
    QUALITY_SCORE_FIELDS,
    SOURCE_COUNT_FIELDS,
    ExecutionStatus,
)
from orchestrator.pipeline.context import WorkerResult


def _number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def resolve_status(
    results: Sequence[WorkerResult],
    required_step_orders: Iterable[int],
) -> ExecutionStatus:
    """
    failed:    no result succeeded;
    completed: every required step of the template has a successful result;
    partial:   otherwise (a required step failed, was never reached after a
               stop, or was skipped by its conditions).
    """
    if not any(r.success for r in results):
        return ExecutionStatus.FAILED

    required = set(required_step_orders)
    succeeded = {r.step_order for r in results if r.success and r.step_order in required}
    if succeeded == required:
        return ExecutionStatus.COMPLETED

    return ExecutionStatus.PARTIAL


def total_cost(results: Iterable[WorkerResult]) -> float:
    return round(sum(r.cost_usd for r in results), 6)


def quality_score(results: Iterable[WorkerResult]) -> float:
    """Mean of the first quality-like field found in each successful result."""
    scores = []
    for result in results:
        if not result.success or not isinstance(result.data, Mapping):
            continue
        for key in QUALITY_SCORE_FIELDS:
            score = _number(result.data.get(key))
            if score is not None:
                scores.append(score)
                break
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 4)


def _count_from_state(state: Mapping[str, Any], keys: Sequence[str]) -> int | None:
    for key in keys:
        value = state.get(key)
        if isinstance(value, list):
            return len(value)
    return None


def _count_from_results(results: Sequence[WorkerResult], keys: Sequence[str]) -> int:
    # Latest step wins.
    for result in reversed(results):
        if not result.success or not isinstance(result.data, Mapping):
            continue
        for key in keys:
            value = _number(result.data.get(key))
            if value is not None:
                return int(value)
    return 0


def sources_discovered(state: Mapping[str, Any], results: Sequence[WorkerResult]) -> int:
    count = _count_from_state(state, ("all_sources", "sources"))
    if count is not None:
        return count
    return _count_from_results(results, SOURCE_COUNT_FIELDS)


def articles_processed(state: Mapping[str, Any], results: Sequence[WorkerResult]) -> int:
    count = _count_from_state(state, ("articles",))
    if count is not None:
        return count
    return _count_from_results(results, ARTICLE_COUNT_FIELDS)
