"""
PipelineRun — execution header, one row per orchestration run.

WorkerResultLog — one row per worker invocation within a run, ordered by
`position` (the order results were appended).
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from orchestrator.db.models.base import Base, JSONType, utcnow


class PipelineRun(Base):
    """One row per pipeline execution."""

    __tablename__ = "pipeline_executions"

    id = Column(String(64), primary_key=True)
    topic = Column(Text, nullable=False)
    template_name = Column(String(100), nullable=False, index=True)
    strategy = Column(String(50), nullable=False, default="balanced")

    # ── Status ────────────────────────────────
    status = Column(String(20), nullable=False, default="running", index=True)
    error = Column(Text, nullable=True)

    # ── Aggregates ────────────────────────────
    total_execution_time_ms = Column(Integer, default=0)
    total_cost_usd = Column(Float, default=0.0)
    sources_discovered = Column(Integer, default=0)
    articles_processed = Column(Integer, default=0)
    final_quality_score = Column(Float, default=0.0)

    # ── Timing (UTC) ─────────────────────────
    started_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # ── Snapshots ─────────────────────────────
    request = Column(JSONType, default=dict)
    final_state = Column(JSONType, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    results = relationship(
        "WorkerResultLog",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="WorkerResultLog.position",
    )

    def __repr__(self) -> str:
        return f"<PipelineRun {self.id} template={self.template_name} status={self.status}>"


class WorkerResultLog(Base):
    """One row per worker invocation."""

    __tablename__ = "worker_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(
        String(64),
        ForeignKey("pipeline_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)

    step_order = Column(Integer, nullable=False)
    step_name = Column(String(255), nullable=True)
    worker_name = Column(String(100), nullable=False, index=True)

    # ── Outcome ───────────────────────────────
    success = Column(Boolean, nullable=False)
    execution_time_ms = Column(Integer, default=0)
    cost_usd = Column(Float, default=0.0)
    cache_hit = Column(Boolean, default=False)
    data = Column(JSONType, nullable=True)
    error = Column(Text, nullable=True)
    bottlenecks = Column(JSONType, default=list)

    run = relationship("PipelineRun", back_populates="results")

    def __repr__(self) -> str:
        return f"<WorkerResultLog {self.execution_id}#{self.position} {self.worker_name} success={self.success}>"
