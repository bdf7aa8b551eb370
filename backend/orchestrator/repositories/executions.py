"""
Pipeline execution repository. Headers live in `pipeline_executions`,
per-invocation rows live in `worker_results`.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orchestrator.db.models.pipeline_run import PipelineRun, WorkerResultLog

_HEADER_FIELDS = {
    "topic",
    "template_name",
    "strategy",
    "status",
    "error",
    "total_execution_time_ms",
    "total_cost_usd",
    "sources_discovered",
    "articles_processed",
    "final_quality_score",
    "started_at",
    "completed_at",
    "request",
    "final_state",
}

_RESULT_FIELDS = {
    "step_order",
    "step_name",
    "worker_name",
    "success",
    "execution_time_ms",
    "cost_usd",
    "cache_hit",
    "data",
    "error",
    "bottlenecks",
}


async def get_execution(
    db: AsyncSession,
    execution_id: str,
    *,
    with_results: bool = True,
) -> PipelineRun | None:
    """Fetch one execution header, optionally with its ordered results."""
    stmt = select(PipelineRun).where(PipelineRun.id == execution_id)
    if with_results:
        stmt = stmt.options(selectinload(PipelineRun.results))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_execution(
    db: AsyncSession,
    execution_id: str,
    header: Mapping[str, Any],
    results: Iterable[Mapping[str, Any]] | None = None,
) -> PipelineRun:
    """
    Insert or update the header.  When `results` is given the stored
    results are replaced by it, positions assigned in iteration order.
    """
    run = await get_execution(db, execution_id)
    if run is None:
        run = PipelineRun(id=execution_id, results=[])
        db.add(run)

    for key, value in header.items():
        if key in _HEADER_FIELDS:
            setattr(run, key, value)

    if results is not None:
        run.results = [
            WorkerResultLog(
                position=position,
                **{k: v for k, v in row.items() if k in _RESULT_FIELDS},
            )
            for position, row in enumerate(results)
        ]

    await db.flush()
    return run


async def list_executions(
    db: AsyncSession,
    *,
    status: str | None = None,
    template_name: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[PipelineRun]:
    """List headers newest first (results are not loaded)."""
    stmt = select(PipelineRun).order_by(PipelineRun.started_at.desc())
    if status:
        stmt = stmt.where(PipelineRun.status == status)
    if template_name:
        stmt = stmt.where(PipelineRun.template_name == template_name)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_executions(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(PipelineRun.id)))
    return result.scalar_one()


async def count_by_status(db: AsyncSession, *, since: datetime) -> dict[str, int]:
    stmt = (
        select(PipelineRun.status, func.count(PipelineRun.id))
        .where(PipelineRun.started_at >= since)
        .group_by(PipelineRun.status)
    )
    result = await db.execute(stmt)
    return {status: count for status, count in result.all()}


async def averages(db: AsyncSession, *, since: datetime) -> dict[str, float]:
    """Average time, cost and quality over finished executions since `since`."""
    stmt = select(
        func.avg(PipelineRun.total_execution_time_ms),
        func.avg(PipelineRun.total_cost_usd),
        func.avg(PipelineRun.final_quality_score),
        func.coalesce(func.sum(PipelineRun.total_cost_usd), 0.0),
    ).where(
        PipelineRun.started_at >= since,
        PipelineRun.status != "running",
    )
    avg_time, avg_cost, avg_quality, total_cost = (await db.execute(stmt)).one()
    return {
        "avg_execution_time_ms": round(float(avg_time or 0), 1),
        "avg_cost_usd": round(float(avg_cost or 0), 6),
        "avg_quality_score": round(float(avg_quality or 0), 4),
        "total_cost_usd": round(float(total_cost or 0), 6),
    }


async def worker_performance(db: AsyncSession, *, since: datetime) -> list[dict[str, Any]]:
    """Per-worker call counts, success counts and mean latency."""
    stmt = (
        select(
            WorkerResultLog.worker_name,
            func.count(WorkerResultLog.id),
            func.sum(case((WorkerResultLog.success.is_(True), 1), else_=0)),
            func.avg(WorkerResultLog.execution_time_ms),
            func.coalesce(func.sum(WorkerResultLog.cost_usd), 0.0),
        )
        .join(PipelineRun, PipelineRun.id == WorkerResultLog.execution_id)
        .where(PipelineRun.started_at >= since)
        .group_by(WorkerResultLog.worker_name)
        .order_by(WorkerResultLog.worker_name)
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            "worker_name": name,
            "calls": calls,
            "successes": int(successes or 0),
            "avg_execution_time_ms": round(float(avg_ms or 0), 1),
            "total_cost_usd": round(float(cost or 0), 6),
        }
        for name, calls, successes, avg_ms, cost in rows
    ]
