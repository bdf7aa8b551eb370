"""
Orchestration endpoints: run, queue, status lookup, listing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from orchestrator.api.deps import (
    get_executor,
    get_pipeline_dispatcher,
    get_recorder,
    get_template_store,
    require_client_key,
)
from orchestrator.api.schemas.pipeline import (
    OrchestrationRequest,
    OrchestrationResponse,
    QueuedResponse,
)
from orchestrator.core.config import settings
from orchestrator.core.constants import ExecutionStatus
from orchestrator.core.logging import get_logger
from orchestrator.pipeline.context import generate_execution_id
from orchestrator.pipeline.engine import PipelineExecutor
from orchestrator.pipeline.errors import (
    EmptyTemplateError,
    ExecutionNotFoundError,
    InvalidRequestError,
    TemplateNotFoundError,
)
from orchestrator.pipeline.recorder import ExecutionRecorder
from orchestrator.pipeline.stores import TemplateStore

router = APIRouter(tags=["Orchestration"])
logger = get_logger(__name__)


# ─── Run ──────────────────────────────────────────────────
@router.post(
    "/orchestrate",
    response_model=OrchestrationResponse,
    dependencies=[Depends(require_client_key)],
)
async def orchestrate(
    body: OrchestrationRequest,
    executor: PipelineExecutor = Depends(get_executor),
):
    """
    Run a pipeline synchronously and return the full execution.

    Step failures are reported inside the execution (`status`, per-result
    `error`); only request-level problems produce an error response.
    """
    execution = await executor.run(body.to_pipeline_request())
    return {"status": "ok", "pipeline": execution.to_dict()}


# ─── Queue ────────────────────────────────────────────────
@router.post(
    "/orchestrate/queue",
    response_model=QueuedResponse,
    status_code=202,
    dependencies=[Depends(require_client_key)],
)
async def orchestrate_queued(
    body: OrchestrationRequest,
    template_store: TemplateStore = Depends(get_template_store),
    dispatch=Depends(get_pipeline_dispatcher),
):
    """
    Validate the request, hand the run to a Celery worker and return
    immediately with the execution id to poll.
    """
    request = body.to_pipeline_request()
    if not (body.topic or "").strip():
        raise InvalidRequestError("Missing required field: topic")

    template_name = body.pipeline_template or settings.DEFAULT_PIPELINE_TEMPLATE
    template = await template_store.get_template(template_name)
    if template is None:
        raise TemplateNotFoundError(template_name)
    if not template.steps:
        raise EmptyTemplateError(template_name)

    execution_id = generate_execution_id()
    task = dispatch(request, execution_id)

    logger.info(
        "Pipeline queued",
        execution_id=execution_id,
        template_name=template_name,
        task_id=task.id,
    )
    return {
        "status": "queued",
        "pipeline_id": execution_id,
        "task_id": task.id,
        "status_url": f"/pipeline/{execution_id}",
    }


# ─── Status ───────────────────────────────────────────────
@router.get("/pipeline/{execution_id}")
async def get_pipeline(
    execution_id: str,
    recorder: ExecutionRecorder = Depends(get_recorder),
):
    """Stored execution with its ordered worker results."""
    execution = await recorder.get(execution_id)
    if execution is None:
        raise ExecutionNotFoundError(execution_id)
    return {"status": "ok", "pipeline": execution.to_dict()}


# ─── Listing ──────────────────────────────────────────────
@router.get("/pipelines")
async def list_pipelines(
    status: ExecutionStatus | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    recorder: ExecutionRecorder = Depends(get_recorder),
):
    """Recent executions, newest first, without worker results."""
    executions = await recorder.list_recent(limit=limit, status=status)
    return {
        "status": "ok",
        "data": [
            {k: v for k, v in e.to_dict().items() if k not in ("worker_results", "final_state")}
            for e in executions
        ],
        "total": len(executions),
    }
