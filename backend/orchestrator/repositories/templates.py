"""
Pipeline template repository.

Templates are always loaded together with their steps (selectinload) so
callers can read `template.steps` after the session is gone.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orchestrator.db.models.pipeline_template import TemplateRecord, TemplateStepRecord

_TEMPLATE_FIELDS = {
    "display_name",
    "description",
    "category",
    "complexity_level",
    "estimated_duration_ms",
    "estimated_cost_usd",
    "is_active",
}

_STEP_FIELDS = {
    "step_order",
    "worker_name",
    "step_name",
    "is_optional",
    "conditions",
    "input_mapping",
    "output_mapping",
    "timeout_override_ms",
    "depends_on_steps",
}


def _with_steps():
    return select(TemplateRecord).options(selectinload(TemplateRecord.steps))


async def get_template_by_name(
    db: AsyncSession,
    name: str,
    *,
    active_only: bool = True,
) -> TemplateRecord | None:
    """Fetch a template and its steps by unique name."""
    stmt = _with_steps().where(TemplateRecord.name == name)
    if active_only:
        stmt = stmt.where(TemplateRecord.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_templates(db: AsyncSession, *, active_only: bool = True) -> list[TemplateRecord]:
    """List templates ordered by category then name."""
    stmt = _with_steps().order_by(TemplateRecord.category, TemplateRecord.name)
    if active_only:
        stmt = stmt.where(TemplateRecord.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def upsert_template(
    db: AsyncSession,
    *,
    name: str,
    steps: Iterable[Mapping[str, Any]] = (),
    **fields: object,
) -> TemplateRecord:
    """
    Create or update a template and replace its steps wholesale.

    Old steps are deleted and flushed before the new ones are inserted so
    the `(template_id, step_order)` constraint never sees both sets.
    """
    template = await get_template_by_name(db, name, active_only=False)
    if template is None:
        template = TemplateRecord(name=name, steps=[])
        db.add(template)

    for key, value in fields.items():
        if key in _TEMPLATE_FIELDS:
            setattr(template, key, value)

    template.steps.clear()
    await db.flush()

    for step in steps:
        template.steps.append(
            TemplateStepRecord(**{k: v for k, v in step.items() if k in _STEP_FIELDS})
        )

    await db.flush()
    return template


async def set_template_active(db: AsyncSession, name: str, is_active: bool) -> TemplateRecord | None:
    template = await get_template_by_name(db, name, active_only=False)
    if template is None:
        return None
    template.is_active = is_active
    await db.flush()
    return template
