"""
Shared fixtures: fake worker services behind httpx.MockTransport, a
pre-wired executor factory, and an in-memory SQLite database.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from orchestrator.core.config import OrchestratorConfig
from orchestrator.db.models import Base
from orchestrator.pipeline.definitions import PipelineTemplate
from orchestrator.pipeline.engine import PipelineExecutor
from orchestrator.pipeline.invoker import WorkerInvoker
from orchestrator.pipeline.stores import InMemoryTemplateStore, InMemoryWorkerRegistry
from tests.support import BINDINGS, WORKERS, FakeWorkers


@pytest.fixture
def config() -> OrchestratorConfig:
    return OrchestratorConfig(
        worker_shared_secret="test-secret",
        worker_id="bitware_orchestrator",
        worker_bindings=dict(BINDINGS),
        default_worker_timeout_ms=2_000,
    )


@pytest.fixture
def fake_workers() -> FakeWorkers:
    return FakeWorkers()


@pytest_asyncio.fixture
async def invoker(config, fake_workers):
    async with WorkerInvoker(config, transport=fake_workers.transport()) as invoker:
        yield invoker


@pytest.fixture
def make_executor(config, invoker):
    """Build an executor over in-memory stores."""

    def _make(*templates: PipelineTemplate, workers=WORKERS, recorder=None) -> PipelineExecutor:
        return PipelineExecutor(
            template_store=InMemoryTemplateStore(templates),
            worker_registry=InMemoryWorkerRegistry(workers),
            invoker=invoker,
            recorder=recorder,
            config=config,
        )

    return _make


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory SQLite database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
