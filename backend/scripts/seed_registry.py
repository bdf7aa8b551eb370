"""
Seed the worker registry and the default pipeline templates.
Run: python -m scripts.seed_registry  (from backend/)

Upserts by name, so it is safe to re-run after editing the catalog.
"""

import asyncio

from orchestrator.catalog import DEFAULT_TEMPLATES, DEFAULT_WORKERS
from orchestrator.core.config import settings
from orchestrator.db.session import build_engine, build_session_factory, session_scope
from orchestrator.repositories.templates import upsert_template
from orchestrator.repositories.workers import upsert_worker


async def seed():
    """Upsert default workers and templates."""
    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)
    try:
        async with session_scope(session_factory) as session:
            for worker in DEFAULT_WORKERS:
                fields = worker.to_dict()
                fields.pop("name")
                await upsert_worker(session, name=worker.name, **fields)
                print(f"  Worker:   {worker.name} -> {worker.binding_ref} {worker.endpoints}")

            for template in DEFAULT_TEMPLATES:
                fields = template.to_dict()
                for key in ("id", "name", "step_count", "steps"):
                    fields.pop(key)
                steps = [s.to_dict() for s in template.ordered_steps()]
                await upsert_template(session, name=template.name, steps=steps, **fields)
                print(f"  Template: {template.name} ({len(steps)} steps)")
    finally:
        await engine.dispose()

    print(f"Seeded {len(DEFAULT_WORKERS)} workers and {len(DEFAULT_TEMPLATES)} templates.")


if __name__ == "__main__":
    asyncio.run(seed())
