"""
Health read-outs for the orchestrator and the workers it drives.

`check_pipeline_health` probes every active registered worker's /health
endpoint concurrently and stores each outcome as the worker's
`health_status`.  `check_orchestrator_health` reports database
reachability and whether every active worker has a binding.
"""

from __future__ import annotations

import asyncio
from typing import Any

from orchestrator.core.constants import WorkerHealth
from orchestrator.core.logging import get_logger
from orchestrator.pipeline.context import utcnow
from orchestrator.pipeline.invoker import WorkerInvoker
from orchestrator.pipeline.recorder import ExecutionRecorder
from orchestrator.pipeline.stores import WorkerRegistry

logger = get_logger(__name__)


def overall_health(statuses: list[str]) -> str:
    """healthy when every worker is, unhealthy when none is, degraded otherwise."""
    healthy = sum(1 for s in statuses if s == WorkerHealth.HEALTHY)
    if statuses and healthy == len(statuses):
        return "healthy"
    if healthy == 0:
        return "unhealthy"
    return "degraded"


async def check_pipeline_health(
    registry: WorkerRegistry,
    invoker: WorkerInvoker,
    *,
    record: bool = True,
) -> dict[str, Any]:
    """Probe all active workers.  Recording failures are logged, never raised."""
    workers = await registry.list_workers(active_only=True)
    outcomes = await asyncio.gather(*(invoker.check_health(w) for w in workers))

    report: dict[str, Any] = {}
    for worker, outcome in zip(workers, outcomes):
        report[worker.name] = {**outcome, "status": str(outcome["status"])}
        if not record:
            continue
        try:
            await registry.record_health(worker.name, str(outcome["status"]))
        except Exception as exc:
            logger.warning("Could not store worker health", worker_name=worker.name, error=str(exc))

    statuses = [entry["status"] for entry in report.values()]
    return {
        "status": overall_health(statuses),
        "healthy_workers": statuses.count(WorkerHealth.HEALTHY),
        "total_workers": len(statuses),
        "workers": report,
        "timestamp": utcnow().isoformat(),
    }


async def check_orchestrator_health(
    recorder: ExecutionRecorder,
    registry: WorkerRegistry,
    invoker: WorkerInvoker,
) -> dict[str, Any]:
    """Database connectivity plus binding coverage of the active workers."""
    try:
        total_pipelines = await recorder.count()
        workers = await registry.list_workers(active_only=True)
    except Exception as exc:
        logger.error("Health check failed", error=str(exc))
        return {
            "status": "unhealthy",
            "database": "unreachable",
            "error": str(exc) or type(exc).__name__,
            "timestamp": utcnow().isoformat(),
        }

    unconfigured = sorted(w.name for w in workers if invoker.resolve_base_url(w.binding_ref) is None)
    return {
        "status": "healthy",
        "database": "connected",
        "total_pipelines": total_pipelines,
        "workers_configured": not unconfigured,
        "unconfigured_workers": unconfigured,
        "orchestration_ready": bool(workers) and not unconfigured,
        "timestamp": utcnow().isoformat(),
    }
