"""
Worker registry repository.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.db.models.worker_registration import WorkerRegistration

_MUTABLE_FIELDS = {
    "display_name",
    "binding_ref",
    "endpoints",
    "default_method",
    "timeout_ms",
    "input_format",
    "output_format",
    "dependencies",
    "is_active",
    "health_status",
}


async def get_worker_by_name(db: AsyncSession, name: str) -> WorkerRegistration | None:
    """Fetch a worker by its unique name, active or not."""
    stmt = select(WorkerRegistration).where(WorkerRegistration.name == name)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_workers(db: AsyncSession, *, active_only: bool = False) -> list[WorkerRegistration]:
    stmt = select(WorkerRegistration).order_by(WorkerRegistration.name)
    if active_only:
        stmt = stmt.where(WorkerRegistration.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def upsert_worker(db: AsyncSession, *, name: str, **fields: object) -> WorkerRegistration:
    """Create the worker or update its mutable fields in place."""
    worker = await get_worker_by_name(db, name)
    if worker is None:
        worker = WorkerRegistration(name=name)
        db.add(worker)

    for key, value in fields.items():
        if key in _MUTABLE_FIELDS:
            setattr(worker, key, value)

    await db.flush()
    return worker


async def set_health_status(
    db: AsyncSession,
    name: str,
    health_status: str,
    *,
    is_active: bool | None = None,
) -> WorkerRegistration | None:
    """Record a health check outcome.  Returns None for unknown workers."""
    worker = await get_worker_by_name(db, name)
    if worker is None:
        return None
    worker.health_status = health_status
    if is_active is not None:
        worker.is_active = is_active
    await db.flush()
    return worker
