"""
ExecutionRecorder — durable write-through of executions and their
worker results, plus the read paths behind the status and listing
endpoints.

Writes are best-effort.  A failed write is retried, and if it still
fails the whole execution is logged at error level so it can be
reconstructed by hand.  Nothing here raises into the executor.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.core.logging import get_logger
from orchestrator.db.models.pipeline_run import PipelineRun, WorkerResultLog
from orchestrator.db.session import session_scope
from orchestrator.pipeline.context import PipelineExecution, WorkerResult, utcnow
from orchestrator.pipeline.errors import PersistenceError
from orchestrator.repositories import executions as execution_repository

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════
#  Domain ↔ row conversion
# ═══════════════════════════════════════════════════════════

def header_fields(execution: PipelineExecution) -> dict[str, Any]:
    return {
        "topic": execution.topic,
        "template_name": execution.template_name,
        "strategy": str(execution.strategy),
        "status": str(execution.status),
        "error": execution.error,
        "total_execution_time_ms": execution.total_execution_time_ms,
        "total_cost_usd": execution.total_cost_usd,
        "sources_discovered": execution.sources_discovered,
        "articles_processed": execution.articles_processed,
        "final_quality_score": execution.final_quality_score,
        "started_at": execution.started_at,
        "completed_at": execution.completed_at,
        "request": execution.request,
        "final_state": execution.final_state,
    }


def result_fields(result: WorkerResult) -> dict[str, Any]:
    return {
        "step_order": result.step_order,
        "step_name": result.step_name,
        "worker_name": result.worker_name,
        "success": result.success,
        "execution_time_ms": result.execution_time_ms,
        "cost_usd": result.cost_usd,
        "cache_hit": result.cache_hit,
        "data": result.data,
        "error": result.error,
        "bottlenecks": [str(b) for b in result.bottlenecks_detected],
    }


def result_from_row(row: WorkerResultLog) -> WorkerResult:
    return WorkerResult(
        worker_name=row.worker_name,
        step_order=row.step_order,
        step_name=row.step_name or "",
        success=bool(row.success),
        execution_time_ms=row.execution_time_ms or 0,
        cost_usd=row.cost_usd or 0.0,
        cache_hit=bool(row.cache_hit),
        data=row.data,
        error=row.error,
        bottlenecks_detected=tuple(row.bottlenecks or ()),
    )


def execution_from_row(row: PipelineRun, *, with_results: bool = True) -> PipelineExecution:
    return PipelineExecution(
        id=row.id,
        topic=row.topic,
        template_name=row.template_name,
        strategy=row.strategy,
        status=row.status,
        total_execution_time_ms=row.total_execution_time_ms or 0,
        total_cost_usd=row.total_cost_usd or 0.0,
        sources_discovered=row.sources_discovered or 0,
        articles_processed=row.articles_processed or 0,
        final_quality_score=row.final_quality_score or 0.0,
        started_at=row.started_at,
        completed_at=row.completed_at,
        error=row.error,
        request=dict(row.request or {}),
        final_state=dict(row.final_state or {}),
        worker_results=[result_from_row(r) for r in row.results] if with_results else [],
    )


# ═══════════════════════════════════════════════════════════
#  Recorder
# ═══════════════════════════════════════════════════════════

class ExecutionRecorder:
    """
    Persists PipelineExecutions through the executions repository.

    Args:
        session_factory: async_sessionmaker bound to the service database.
        retry_attempts: extra attempts after the first failed write.
        retry_delay: seconds to wait between attempts (multiplied by attempt).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retry_attempts: int = 2,
        retry_delay: float = 0.2,
    ) -> None:
        self._session_factory = session_factory
        self.retry_attempts = max(0, retry_attempts)
        self.retry_delay = retry_delay

    # ─── Writes ───────────────────────────────────────

    async def start(self, execution: PipelineExecution) -> bool:
        """Write the `running` header.  Returns False if it could not be stored."""
        return await self._write(execution, with_results=False)

    async def record(self, execution: PipelineExecution) -> bool:
        """Upsert the header and replace the stored worker results."""
        return await self._write(execution, with_results=True)

    async def _write(self, execution: PipelineExecution, *, with_results: bool) -> bool:
        log = logger.bind(execution_id=execution.id, status=str(execution.status))
        attempts = self.retry_attempts + 1

        for attempt in range(1, attempts + 1):
            try:
                await self._write_once(execution, with_results=with_results)
                return True
            except PersistenceError as exc:
                log.warning(
                    "Execution write failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    error=exc.message,
                )
                if attempt < attempts and self.retry_delay:
                    await asyncio.sleep(self.retry_delay * attempt)

        log.error(
            "Execution not persisted, giving up",
            max_attempts=attempts,
            execution=execution.to_dict(),
        )
        return False

    async def _write_once(self, execution: PipelineExecution, *, with_results: bool) -> None:
        results = [result_fields(r) for r in execution.worker_results] if with_results else None
        try:
            async with session_scope(self._session_factory) as session:
                await execution_repository.upsert_execution(
                    session,
                    execution.id,
                    header_fields(execution),
                    results,
                )
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceError(
                f"{type(exc).__name__}: {exc}",
                execution_id=execution.id,
            ) from exc

    # ─── Reads ────────────────────────────────────────

    async def get(self, execution_id: str) -> PipelineExecution | None:
        async with self._session_factory() as session:
            row = await execution_repository.get_execution(session, execution_id)
            return execution_from_row(row) if row is not None else None

    async def list_recent(self, limit: int = 20, status: str | None = None) -> list[PipelineExecution]:
        """Newest first, headers only."""
        async with self._session_factory() as session:
            rows = await execution_repository.list_executions(session, status=status, limit=limit)
            return [execution_from_row(r, with_results=False) for r in rows]

    async def count(self) -> int:
        """Total stored executions.  Raises if the database is unreachable."""
        async with self._session_factory() as session:
            return await execution_repository.count_executions(session)

    async def stats(self, days: int = 7) -> dict[str, Any]:
        """Counts by status and averages over the last `days` days."""
        since = utcnow() - timedelta(days=days)
        async with self._session_factory() as session:
            by_status = await execution_repository.count_by_status(session, since=since)
            averages = await execution_repository.averages(session, since=since)
            workers = await execution_repository.worker_performance(session, since=since)

        return {
            "period_days": days,
            "total_executions": sum(by_status.values()),
            "by_status": by_status,
            **averages,
            "workers": workers,
        }
