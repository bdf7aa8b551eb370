"""
Pydantic Settings — centralized configuration loaded from environment variables.

The pipeline engine never reads `settings` directly: the API lifespan and
the Celery task call `settings.orchestrator_config()` and hand the result
to the invoker and executor at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Explicit configuration for the invoker and executor.

    Args:
        worker_shared_secret: Bearer credential sent to every worker.
        worker_id: Caller identity sent in the X-Worker-ID header.
        worker_bindings: binding_ref -> base URL of the worker service.
        default_worker_timeout_ms: Used when neither the step nor the
            worker descriptor defines a timeout.
        default_template: Template run when the request names none.
        default_source_discovery_depth: Seeded into pipeline state.
        default_max_articles: Seeded into pipeline state.
        persist_retry_attempts: Write attempts before the recorder gives up.
    """

    worker_shared_secret: str = ""
    worker_id: str = "bitware_orchestrator"
    worker_bindings: dict[str, str] = field(default_factory=dict)
    default_worker_timeout_ms: int = 60_000
    default_template: str = "rss_intelligence"
    default_source_discovery_depth: int = 3
    default_max_articles: int = 50
    persist_retry_attempts: int = 2


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "orchestrator_user"
    POSTGRES_PASSWORD: str = "orchestrator_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "orchestration_db"

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Redis / Celery ────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── Auth ──────────────────────────────────
    WORKER_SHARED_SECRET: str = ""
    CLIENT_API_KEY: str = ""        # empty disables the client key check
    ORCHESTRATOR_WORKER_ID: str = "bitware_orchestrator"

    # ── Worker bindings ───────────────────────
    # JSON object in the environment, e.g.
    #   WORKER_BINDINGS='{"TOPIC_RESEARCHER": "https://topic-researcher.internal"}'
    WORKER_BINDINGS: dict[str, str] = {}
    DEFAULT_WORKER_TIMEOUT_MS: int = 60_000

    # ── Orchestration defaults ────────────────
    DEFAULT_PIPELINE_TEMPLATE: str = "rss_intelligence"
    DEFAULT_SOURCE_DISCOVERY_DEPTH: int = 3
    DEFAULT_MAX_ARTICLES: int = 50
    PERSIST_RETRY_ATTEMPTS: int = 2

    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}

    def orchestrator_config(self) -> OrchestratorConfig:
        """Snapshot the engine-facing subset of the settings."""
        return OrchestratorConfig(
            worker_shared_secret=self.WORKER_SHARED_SECRET,
            worker_id=self.ORCHESTRATOR_WORKER_ID,
            worker_bindings=dict(self.WORKER_BINDINGS),
            default_worker_timeout_ms=self.DEFAULT_WORKER_TIMEOUT_MS,
            default_template=self.DEFAULT_PIPELINE_TEMPLATE,
            default_source_discovery_depth=self.DEFAULT_SOURCE_DISCOVERY_DEPTH,
            default_max_articles=self.DEFAULT_MAX_ARTICLES,
            persist_retry_attempts=self.PERSIST_RETRY_ATTEMPTS,
        )


settings = Settings()
