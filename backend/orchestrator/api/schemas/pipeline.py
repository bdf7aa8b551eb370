"""Orchestration request/response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrchestrationRequest(BaseModel):
    """
    Inbound orchestration request.

    `topic` is declared optional here so a missing topic reaches the
    executor and is reported with the same error envelope as the other
    request-level errors.  Unknown fields are kept and passed through
    into pipeline state.
    """

    model_config = ConfigDict(extra="allow")

    topic: str | None = Field(default=None, max_length=500)
    pipeline_template: str | None = None
    source_discovery_depth: int | None = Field(default=None, ge=1, le=10)
    max_articles: int | None = Field(default=None, ge=1, le=1000)
    optimize_for: str | None = None

    def to_pipeline_request(self) -> dict[str, Any]:
        """Declared and extra fields, unset ones dropped."""
        return self.model_dump(exclude_none=True)


class OrchestrationResponse(BaseModel):
    status: str = "ok"
    pipeline: dict[str, Any]


class QueuedResponse(BaseModel):
    status: str = "queued"
    pipeline_id: str
    task_id: str
    status_url: str
