"""
WorkerRegistration — one row per downstream worker service.

Endpoints and the default HTTP method are data, populated by the seed
script, so the invoker never branches on worker names.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from orchestrator.db.models.base import Base, JSONType, utcnow


class WorkerRegistration(Base):
    """Catalog entry for a callable worker."""

    __tablename__ = "worker_registry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)

    # ── Reachability ─────────────────────────
    binding_ref = Column(String(255), nullable=False)
    endpoints = Column(JSONType, default=list)
    default_method = Column(String(10), nullable=False, default="GET")
    timeout_ms = Column(Integer, nullable=True)

    # ── Contract description ─────────────────
    input_format = Column(Text, nullable=True)
    output_format = Column(Text, nullable=True)
    dependencies = Column(JSONType, default=list)

    # ── Health ───────────────────────────────
    is_active = Column(Boolean, nullable=False, default=True)
    health_status = Column(String(50), nullable=False, default="unknown")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<WorkerRegistration {self.name} binding={self.binding_ref} active={self.is_active}>"
