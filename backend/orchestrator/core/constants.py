"""Shared constants and enums used across the orchestrator."""

from enum import StrEnum


class ExecutionStatus(StrEnum):
    """Lifecycle status of a pipeline execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"  # reserved, nothing triggers it yet

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class Strategy(StrEnum):
    """Optimization hint recorded on an execution.  Informational only."""

    SPEED_OPTIMIZED = "speed_optimized"
    COST_OPTIMIZED = "cost_optimized"
    QUALITY_OPTIMIZED = "quality_optimized"
    BALANCED = "balanced"


class HttpMethod(StrEnum):
    """HTTP methods a worker endpoint may expect."""

    GET = "GET"
    POST = "POST"


class FailureKind(StrEnum):
    """Tag attached to a failed WorkerResult describing what went wrong."""

    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"
    INVALID_RESPONSE = "invalid_response"
    WORKER_UNAVAILABLE = "worker_unavailable"


class Bottleneck(StrEnum):
    """Performance annotations attached to a successful WorkerResult."""

    SLOW_EXECUTION = "slow_execution"
    HIGH_COST = "high_cost"
    CACHE_MISS = "cache_miss"


class WorkerHealth(StrEnum):
    """Outcome of probing a worker's /health endpoint."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNREACHABLE = "unreachable"
    NOT_CONFIGURED = "not_configured"


# ─── Bottleneck thresholds ────────────────────────────
SLOW_EXECUTION_MS = 30_000
CACHE_MISS_MS = 5_000
HIGH_COST_USD = 0.10

# ─── Response fields probed on worker output ──────────
COST_FIELDS = ("cost_usd", "estimated_cost_usd", "processing_cost_usd")
CACHE_FIELDS = ("cached", "cache_hit")

# Legacy fallback order, kept for compatibility with existing workers.
QUALITY_SCORE_FIELDS = ("avg_quality_score", "quality_score", "final_quality_score")

SOURCE_COUNT_FIELDS = ("sources_discovered", "total_sources")
ARTICLE_COUNT_FIELDS = ("total_articles", "articles_processed")

# ─── Auth headers ─────────────────────────────────────
WORKER_ID_HEADER = "X-Worker-ID"
CLIENT_KEY_HEADER = "X-API-Key"

# ─── Health probes ────────────────────────────────────
HEALTH_ENDPOINT = "/health"
HEALTH_CHECK_TIMEOUT_MS = 5_000
