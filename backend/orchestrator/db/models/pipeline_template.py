"""
TemplateRecord / TemplateStepRecord — stored pipeline definitions.

A template owns its steps; `(template_id, step_order)` is unique so the
execution order within a template is total.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from orchestrator.db.models.base import Base, JSONType, utcnow


class TemplateRecord(Base):
    """One row per named pipeline template."""

    __tablename__ = "pipeline_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # ── Catalog metadata ─────────────────────
    category = Column(String(100), nullable=True)
    complexity_level = Column(String(50), nullable=True)
    estimated_duration_ms = Column(Integer, nullable=True)
    estimated_cost_usd = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    steps = relationship(
        "TemplateStepRecord",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateStepRecord.step_order",
    )

    def __repr__(self) -> str:
        return f"<TemplateRecord {self.name} active={self.is_active}>"


class TemplateStepRecord(Base):
    """One row per step of a template."""

    __tablename__ = "pipeline_steps"
    __table_args__ = (
        UniqueConstraint("template_id", "step_order", name="uq_pipeline_steps_template_order"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer,
        ForeignKey("pipeline_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ── Step identity ─────────────────────────
    step_order = Column(Integer, nullable=False)
    # Not a foreign key: a step may name a worker that is not registered.
    worker_name = Column(String(100), nullable=False)
    step_name = Column(String(255), nullable=True)
    is_optional = Column(Boolean, nullable=False, default=False)

    # ── Gating and data flow ──────────────────
    conditions = Column(JSONType, default=dict)
    input_mapping = Column(JSONType, default=dict)
    output_mapping = Column(JSONType, default=dict)
    timeout_override_ms = Column(Integer, nullable=True)
    depends_on_steps = Column(JSONType, default=list)

    template = relationship("TemplateRecord", back_populates="steps")

    def __repr__(self) -> str:
        return f"<TemplateStepRecord {self.step_order}:{self.worker_name} optional={self.is_optional}>"
