"""
Exception hierarchy for the orchestration engine.

Only request-level problems (bad topic, unknown template, empty template)
escape the executor.  Step-level problems are folded into a failed
WorkerResult and never raised.  Each exception carries the HTTP status the
API layer should answer with.
"""

from __future__ import annotations


class OrchestrationError(Exception):
    """Base exception for all orchestration errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_order: int | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message
        self.execution_id = execution_id
        self.step_order = step_order
        self.details = details or {}
        super().__init__(message)


class InvalidRequestError(OrchestrationError):
    """The inbound orchestration request is malformed (e.g. no topic)."""

    status_code = 400


class AuthenticationError(OrchestrationError):
    """Missing or wrong client / worker credentials."""

    status_code = 401


class TemplateNotFoundError(OrchestrationError):
    """No active pipeline template with the requested name."""

    status_code = 404

    def __init__(self, template_name: str, **kwargs) -> None:
        self.template_name = template_name
        super().__init__(f"Pipeline template not found: {template_name}", **kwargs)


class EmptyTemplateError(OrchestrationError):
    """The template exists but defines no steps."""

    status_code = 422

    def __init__(self, template_name: str, **kwargs) -> None:
        self.template_name = template_name
        super().__init__(f"Pipeline template has no steps: {template_name}", **kwargs)


class ExecutionNotFoundError(OrchestrationError):
    """No stored execution with the requested id."""

    status_code = 404

    def __init__(self, execution_id: str) -> None:
        super().__init__("Pipeline not found", execution_id=execution_id)


class InvalidTransitionError(OrchestrationError):
    """An execution was moved out of a terminal state."""


class WorkerInvocationError(OrchestrationError):
    """A worker call failed.  Raised and caught inside the invoker only."""

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        status_code: int | None = None,
        **kwargs,
    ) -> None:
        self.kind = kind
        self.http_status = status_code
        super().__init__(message, **kwargs)


class PersistenceError(OrchestrationError):
    """Writing an execution to the store failed."""
