"""
Celery tasks — background pipeline execution.

The queued API path hands out an execution id, then this task runs the
same executor the synchronous path uses.  The recorder stores the result
under that id, so clients poll GET /pipeline/{id}.
"""

from __future__ import annotations

import asyncio
from typing import Any

from celery.signals import worker_process_init

from orchestrator.core.config import settings
from orchestrator.core.logging import get_logger, setup_logging
from orchestrator.db.session import build_engine, build_session_factory
from orchestrator.pipeline.errors import OrchestrationError
from orchestrator.pipeline.factory import build_services
from orchestrator.tasks import celery_app

logger = get_logger("tasks.orchestration")


@worker_process_init.connect
def _configure_worker_logging(**_kwargs) -> None:
    setup_logging("INFO", json_logs=settings.APP_ENV == "production")


async def _run(request: dict[str, Any], execution_id: str) -> dict[str, Any]:
    # Fresh engine per task: asyncio.run() gives every task its own loop.
    engine = build_engine(settings.DATABASE_URL)
    services = build_services(
        settings.orchestrator_config(),
        build_session_factory(engine),
        engine=engine,
    )
    try:
        execution = await services.executor.run(request, execution_id=execution_id)
    finally:
        await services.aclose()

    return {
        "pipeline_id": execution.id,
        "status": str(execution.status),
        "template_name": execution.template_name,
        "results": len(execution.worker_results),
        "total_execution_time_ms": execution.total_execution_time_ms,
        "total_cost_usd": execution.total_cost_usd,
        "error": execution.error,
    }


@celery_app.task(bind=True, name="orchestrator.tasks.orchestration_tasks.run_pipeline")
def run_pipeline(self, request: dict[str, Any], execution_id: str) -> dict[str, Any]:
    """
    Run one orchestration request in the background.

    Request-level errors (unknown template, missing topic) are not retried;
    they are returned as a failed summary so the Celery result explains
    why no execution was stored.
    """
    task_log = logger.bind(task_id=self.request.id, execution_id=execution_id)
    task_log.info("Pipeline task started", template_name=request.get("pipeline_template"))

    try:
        summary = asyncio.run(_run(request, execution_id))
    except OrchestrationError as exc:
        task_log.warning("Pipeline request rejected", error=exc.message)
        return {"pipeline_id": execution_id, "status": "rejected", "error": exc.message}

    task_log.info("Pipeline task finished", status=summary["status"])
    return summary
