"""
Runtime records produced by a pipeline run.

WorkerResult: the immutable outcome of one worker call.
PipelineExecution: the run header; owns its WorkerResults and moves
from `running` to exactly one terminal status.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from orchestrator.core.constants import ExecutionStatus, Strategy
from orchestrator.pipeline.errors import InvalidTransitionError


def generate_execution_id() -> str:
    """Random, time-ordered opaque id, e.g. ``pipe_1760862000123_9f2c41ab07``."""
    return f"pipe_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════
#  WorkerResult
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkerResult:
    """Outcome of invoking one worker for one step."""

    worker_name: str
    step_order: int
    success: bool
    execution_time_ms: int = 0
    cost_usd: float = 0.0
    cache_hit: bool = False
    data: Any = None
    error: str | None = None
    bottlenecks_detected: tuple[str, ...] = ()
    step_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON storage / responses."""
        return {
            "worker_name": self.worker_name,
            "step_order": self.step_order,
            "step_name": self.step_name,
            "success": self.success,
            "execution_time_ms": self.execution_time_ms,
            "cost_usd": self.cost_usd,
            "cache_hit": self.cache_hit,
            "data": self.data,
            "error": self.error,
            "bottlenecks_detected": [str(b) for b in self.bottlenecks_detected],
        }


# ═══════════════════════════════════════════════════════════
#  PipelineExecution
# ═══════════════════════════════════════════════════════════

@dataclass
class PipelineExecution:
    """One run of a template against a topic."""

    id: str
    topic: str
    template_name: str
    strategy: str = Strategy.BALANCED
    status: str = ExecutionStatus.RUNNING
    total_execution_time_ms: int = 0
    total_cost_usd: float = 0.0
    sources_discovered: int = 0
    articles_processed: int = 0
    final_quality_score: float = 0.0
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    worker_results: list[WorkerResult] = field(default_factory=list)
    error: str | None = None

    # ─── Snapshots for inspection ──────────────────────
    request: dict[str, Any] = field(default_factory=dict)
    final_state: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return ExecutionStatus(self.status).is_terminal

    def add_result(self, result: WorkerResult) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(
                "Cannot append results to a finished execution",
                execution_id=self.id,
            )
        self.worker_results.append(result)

    def finish(self, status: ExecutionStatus, completed_at: datetime | None = None) -> None:
        """Move to a terminal status.  Allowed exactly once."""
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Execution already {self.status}, cannot move to {status}",
                execution_id=self.id,
            )
        if not ExecutionStatus(status).is_terminal:
            raise InvalidTransitionError(
                f"{status} is not a terminal status",
                execution_id=self.id,
            )
        self.status = status
        self.completed_at = completed_at or utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Serialise for API responses."""
        return {
            "id": self.id,
            "topic": self.topic,
            "template_name": self.template_name,
            "strategy": str(self.strategy),
            "status": str(self.status),
            "total_execution_time_ms": self.total_execution_time_ms,
            "total_cost_usd": self.total_cost_usd,
            "sources_discovered": self.sources_discovered,
            "articles_processed": self.articles_processed,
            "final_quality_score": self.final_quality_score,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
            "worker_results": [r.to_dict() for r in self.worker_results],
            "final_state": self.final_state,
        }
