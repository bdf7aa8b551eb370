"""
Lookup interfaces the executor depends on, with SQL-backed and
in-memory implementations.

SQL stores open one session per lookup and hand back frozen domain
dataclasses, never ORM rows, so nothing lazy-loads after the session
has closed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.core.constants import HttpMethod
from orchestrator.db.models.pipeline_template import TemplateRecord, TemplateStepRecord
from orchestrator.db.models.worker_registration import WorkerRegistration
from orchestrator.db.session import session_scope
from orchestrator.pipeline.definitions import PipelineStep, PipelineTemplate, WorkerDescriptor
from orchestrator.repositories import templates as template_repository
from orchestrator.repositories import workers as worker_repository


class TemplateStore(Protocol):
    async def get_template(self, name: str) -> PipelineTemplate | None: ...

    async def list_templates(self) -> list[PipelineTemplate]: ...


class WorkerRegistry(Protocol):
    async def get_worker(self, name: str) -> WorkerDescriptor | None: ...

    async def list_workers(self, *, active_only: bool = False) -> list[WorkerDescriptor]: ...

    async def record_health(self, name: str, health_status: str) -> None: ...


# ═══════════════════════════════════════════════════════════
#  Row → domain conversion
# ═══════════════════════════════════════════════════════════

def worker_from_row(row: WorkerRegistration) -> WorkerDescriptor:
    return WorkerDescriptor(
        name=row.name,
        binding_ref=row.binding_ref,
        display_name=row.display_name or row.name,
        endpoints=tuple(row.endpoints or ()),
        default_method=HttpMethod((row.default_method or "GET").upper()),
        input_format=row.input_format or "",
        output_format=row.output_format or "",
        dependencies=frozenset(row.dependencies or ()),
        timeout_ms=row.timeout_ms,
        is_active=bool(row.is_active),
        health_status=row.health_status or "unknown",
    )


def step_from_row(row: TemplateStepRecord) -> PipelineStep:
    return PipelineStep(
        step_order=row.step_order,
        worker_name=row.worker_name,
        step_name=row.step_name or "",
        is_optional=bool(row.is_optional),
        conditions=dict(row.conditions or {}),
        input_mapping=dict(row.input_mapping or {}),
        output_mapping=dict(row.output_mapping or {}),
        timeout_override_ms=row.timeout_override_ms,
        depends_on_steps=frozenset(row.depends_on_steps or ()),
    )


def template_from_row(row: TemplateRecord) -> PipelineTemplate:
    """Requires `row.steps` to be loaded already."""
    return PipelineTemplate(
        id=row.id,
        name=row.name,
        display_name=row.display_name or row.name,
        description=row.description or "",
        category=row.category or "",
        complexity_level=row.complexity_level or "",
        estimated_duration_ms=row.estimated_duration_ms or 0,
        estimated_cost_usd=row.estimated_cost_usd or 0.0,
        is_active=bool(row.is_active),
        steps=tuple(sorted((step_from_row(s) for s in row.steps), key=lambda s: s.step_order)),
    )


# ═══════════════════════════════════════════════════════════
#  SQL-backed
# ═══════════════════════════════════════════════════════════

class SqlTemplateStore:
    """Active templates from `pipeline_templates` / `pipeline_steps`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_template(self, name: str) -> PipelineTemplate | None:
        async with self._session_factory() as session:
            row = await template_repository.get_template_by_name(session, name)
            return template_from_row(row) if row is not None else None

    async def list_templates(self) -> list[PipelineTemplate]:
        async with self._session_factory() as session:
            rows = await template_repository.list_templates(session)
            return [template_from_row(r) for r in rows]


class SqlWorkerRegistry:
    """Worker descriptors from `worker_registry`, inactive rows included."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_worker(self, name: str) -> WorkerDescriptor | None:
        async with self._session_factory() as session:
            row = await worker_repository.get_worker_by_name(session, name)
            return worker_from_row(row) if row is not None else None

    async def list_workers(self, *, active_only: bool = False) -> list[WorkerDescriptor]:
        async with self._session_factory() as session:
            rows = await worker_repository.list_workers(session, active_only=active_only)
            return [worker_from_row(r) for r in rows]

    async def record_health(self, name: str, health_status: str) -> None:
        async with session_scope(self._session_factory) as session:
            await worker_repository.set_health_status(session, name, health_status)


# ═══════════════════════════════════════════════════════════
#  In-memory
# ═══════════════════════════════════════════════════════════

class InMemoryTemplateStore:
    def __init__(self, templates: Iterable[PipelineTemplate] = ()) -> None:
        self._templates = {t.name: t for t in templates}

    def add(self, template: PipelineTemplate) -> None:
        self._templates[template.name] = template

    async def get_template(self, name: str) -> PipelineTemplate | None:
        template = self._templates.get(name)
        if template is None or not template.is_active:
            return None
        return template

    async def list_templates(self) -> list[PipelineTemplate]:
        return sorted(
            (t for t in self._templates.values() if t.is_active),
            key=lambda t: (t.category, t.name),
        )


class InMemoryWorkerRegistry:
    def __init__(self, workers: Iterable[WorkerDescriptor] = ()) -> None:
        self._workers = {w.name: w for w in workers}

    def add(self, worker: WorkerDescriptor) -> None:
        self._workers[worker.name] = worker

    async def get_worker(self, name: str) -> WorkerDescriptor | None:
        return self._workers.get(name)

    async def list_workers(self, *, active_only: bool = False) -> list[WorkerDescriptor]:
        workers = sorted(self._workers.values(), key=lambda w: w.name)
        return [w for w in workers if w.is_active or not active_only]

    async def record_health(self, name: str, health_status: str) -> None:
        worker = self._workers.get(name)
        if worker is not None:
            self._workers[name] = replace(worker, health_status=health_status)
