"""
Wiring for the SQL-backed orchestration services.

The API lifespan and the Celery task both call `build_services()`; each
owns the result and must `aclose()` it.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from orchestrator.core.config import OrchestratorConfig
from orchestrator.pipeline.engine import PipelineExecutor
from orchestrator.pipeline.invoker import WorkerInvoker
from orchestrator.pipeline.recorder import ExecutionRecorder
from orchestrator.pipeline.stores import (
    SqlTemplateStore,
    SqlWorkerRegistry,
    TemplateStore,
    WorkerRegistry,
)


@dataclass
class OrchestratorServices:
    executor: PipelineExecutor
    recorder: ExecutionRecorder
    template_store: TemplateStore
    invoker: WorkerInvoker
    worker_registry: WorkerRegistry
    engine: AsyncEngine | None = None

    async def aclose(self) -> None:
        await self.invoker.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def build_services(
    config: OrchestratorConfig,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    engine: AsyncEngine | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OrchestratorServices:
    """
    Build executor, recorder and stores over one session factory.

    Pass `engine` to have `aclose()` dispose it as well.
    """
    template_store = SqlTemplateStore(session_factory)
    recorder = ExecutionRecorder(session_factory, retry_attempts=config.persist_retry_attempts)
    worker_registry = SqlWorkerRegistry(session_factory)
    invoker = WorkerInvoker(config, transport=transport)
    executor = PipelineExecutor(
        template_store=template_store,
        worker_registry=worker_registry,
        invoker=invoker,
        recorder=recorder,
        config=config,
    )
    return OrchestratorServices(
        executor=executor,
        recorder=recorder,
        template_store=template_store,
        invoker=invoker,
        worker_registry=worker_registry,
        engine=engine,
    )
