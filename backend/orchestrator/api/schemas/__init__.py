"""API schema package."""

from orchestrator.api.schemas.pipeline import (
    OrchestrationRequest,
    OrchestrationResponse,
    QueuedResponse,
)

__all__ = ["OrchestrationRequest", "OrchestrationResponse", "QueuedResponse"]
