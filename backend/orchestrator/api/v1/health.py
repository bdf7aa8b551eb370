"""Health endpoints for the orchestrator and its workers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from orchestrator.api.deps import (
    get_recorder,
    get_services,
    get_settings,
    get_worker_registry,
    require_client_key,
)
from orchestrator.core.config import Settings
from orchestrator.pipeline.factory import OrchestratorServices
from orchestrator.pipeline.health import check_orchestrator_health, check_pipeline_health
from orchestrator.pipeline.recorder import ExecutionRecorder
from orchestrator.pipeline.stores import WorkerRegistry

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    services: OrchestratorServices = Depends(get_services),
    recorder: ExecutionRecorder = Depends(get_recorder),
    worker_registry: WorkerRegistry = Depends(get_worker_registry),
    app_settings: Settings = Depends(get_settings),
):
    """Public health check.  503 when the database cannot be reached."""
    health = await check_orchestrator_health(recorder, worker_registry, services.invoker)
    health.update(service="bitware_orchestrator", env=app_settings.APP_ENV)
    if health["status"] != "healthy":
        return JSONResponse(status_code=503, content=health)
    return health


@router.get("/pipeline-health", dependencies=[Depends(require_client_key)])
async def pipeline_health(
    record: bool = Query(default=True),
    services: OrchestratorServices = Depends(get_services),
    worker_registry: WorkerRegistry = Depends(get_worker_registry),
):
    """Probe every active worker's /health and store the outcome."""
    return await check_pipeline_health(worker_registry, services.invoker, record=record)
