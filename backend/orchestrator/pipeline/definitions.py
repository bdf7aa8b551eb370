"""
Read-only reference data consumed by the executor.

WorkerDescriptor, PipelineStep and PipelineTemplate are built by the
stores from database rows (or directly, in tests and the demo script).
They are frozen: the executor never mutates them during a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from orchestrator.core.constants import HttpMethod


@dataclass(frozen=True)
class WorkerDescriptor:
    """
    A callable worker service from the registry.

    Endpoint and method selection lives here as data (seeded with the
    registry) so the invoker needs no per-worker branches.
    """

    name: str
    binding_ref: str
    display_name: str = ""
    endpoints: tuple[str, ...] = ()
    default_method: str = HttpMethod.GET
    input_format: str = ""
    output_format: str = ""
    dependencies: frozenset[str] = frozenset()
    timeout_ms: int | None = None
    is_active: bool = True
    health_status: str = "unknown"

    @property
    def primary_endpoint(self) -> str:
        """Path called by pipeline steps.  First declared endpoint, else '/'."""
        return self.endpoints[0] if self.endpoints else "/"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "binding_ref": self.binding_ref,
            "endpoints": list(self.endpoints),
            "default_method": str(self.default_method),
            "input_format": self.input_format,
            "output_format": self.output_format,
            "dependencies": sorted(self.dependencies),
            "timeout_ms": self.timeout_ms,
            "is_active": self.is_active,
            "health_status": self.health_status,
        }


@dataclass(frozen=True)
class PipelineStep:
    """
    One unit of work within a template.

    `depends_on_steps` is informational.  The executor runs steps strictly
    by `step_order` and never consults it.
    """

    step_order: int
    worker_name: str
    step_name: str = ""
    is_optional: bool = False
    conditions: dict[str, Any] = field(default_factory=dict)
    input_mapping: dict[str, Any] = field(default_factory=dict)
    output_mapping: dict[str, Any] = field(default_factory=dict)
    timeout_override_ms: int | None = None
    depends_on_steps: frozenset[int] = frozenset()

    @property
    def label(self) -> str:
        return self.step_name or self.worker_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_order": self.step_order,
            "worker_name": self.worker_name,
            "step_name": self.step_name,
            "is_optional": self.is_optional,
            "conditions": dict(self.conditions),
            "input_mapping": dict(self.input_mapping),
            "output_mapping": dict(self.output_mapping),
            "timeout_override_ms": self.timeout_override_ms,
            "depends_on_steps": sorted(self.depends_on_steps),
        }


@dataclass(frozen=True)
class PipelineTemplate:
    """A named, reusable pipeline definition with its ordered steps."""

    name: str
    id: int | None = None
    display_name: str = ""
    description: str = ""
    category: str = ""
    complexity_level: str = ""
    estimated_duration_ms: int = 0
    estimated_cost_usd: float = 0.0
    is_active: bool = True
    steps: tuple[PipelineStep, ...] = ()

    def __post_init__(self) -> None:
        orders = [s.step_order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise ValueError(f"Duplicate step_order in template '{self.name}': {sorted(orders)}")

    def ordered_steps(self) -> list[PipelineStep]:
        """Steps sorted by step_order, whatever order they were stored in."""
        return sorted(self.steps, key=lambda s: s.step_order)

    @property
    def required_step_count(self) -> int:
        return sum(1 for s in self.steps if not s.is_optional)

    def to_summary_dict(self) -> dict[str, Any]:
        """Listing view: identity and display metadata only."""
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category,
            "complexity_level": self.complexity_level,
            "estimated_duration_ms": self.estimated_duration_ms,
            "estimated_cost_usd": self.estimated_cost_usd,
            "step_count": len(self.steps),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.to_summary_dict(),
            "is_active": self.is_active,
            "steps": [s.to_dict() for s in self.ordered_steps()],
        }
