"""Shared dependencies for API routes."""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from orchestrator.core.config import Settings, settings
from orchestrator.core.constants import CLIENT_KEY_HEADER, WORKER_ID_HEADER
from orchestrator.pipeline.engine import PipelineExecutor
from orchestrator.pipeline.errors import AuthenticationError
from orchestrator.pipeline.factory import OrchestratorServices
from orchestrator.pipeline.recorder import ExecutionRecorder
from orchestrator.pipeline.stores import TemplateStore, WorkerRegistry

security_scheme = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return settings


def get_services(request: Request) -> OrchestratorServices:
    """Services built by the application lifespan."""
    return request.app.state.services


def get_executor(services: OrchestratorServices = Depends(get_services)) -> PipelineExecutor:
    return services.executor


def get_recorder(services: OrchestratorServices = Depends(get_services)) -> ExecutionRecorder:
    return services.recorder


def get_template_store(services: OrchestratorServices = Depends(get_services)) -> TemplateStore:
    return services.template_store


def get_worker_registry(services: OrchestratorServices = Depends(get_services)) -> WorkerRegistry:
    return services.worker_registry


async def require_client_key(
    api_key: str | None = Header(default=None, alias=CLIENT_KEY_HEADER),
    app_settings: Settings = Depends(get_settings),
) -> None:
    """Client API key check.  Disabled when CLIENT_API_KEY is empty."""
    expected = app_settings.CLIENT_API_KEY
    if not expected:
        return
    if api_key is None or not secrets.compare_digest(api_key, expected):
        raise AuthenticationError("Invalid or missing API key")


async def require_worker_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    worker_id: str | None = Header(default=None, alias=WORKER_ID_HEADER),
    app_settings: Settings = Depends(get_settings),
) -> str:
    """Worker-to-worker auth: shared bearer secret plus a caller identity."""
    expected = app_settings.WORKER_SHARED_SECRET
    if credentials is None or not worker_id:
        raise AuthenticationError("Worker authentication required")
    if not expected or not secrets.compare_digest(credentials.credentials, expected):
        raise AuthenticationError("Invalid worker credentials")
    return worker_id


def get_pipeline_dispatcher():
    """Callable that enqueues a pipeline run and returns the Celery AsyncResult."""
    from orchestrator.tasks.orchestration_tasks import run_pipeline

    return run_pipeline.delay
