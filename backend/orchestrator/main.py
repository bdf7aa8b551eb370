"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orchestrator import __version__
from orchestrator.api.v1 import admin, health, meta, orchestration, templates
from orchestrator.core.config import settings
from orchestrator.core.logging import get_logger, setup_logging
from orchestrator.db.session import build_engine, build_session_factory
from orchestrator.pipeline.errors import OrchestrationError
from orchestrator.pipeline.factory import build_services

logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging(
        "DEBUG" if settings.APP_ENV == "development" else "INFO",
        json_logs=settings.APP_ENV == "production",
    )
    startup_log = get_logger("startup")

    # Tests install their own services before the app starts.
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        engine = build_engine(settings.DATABASE_URL, echo=False)
        app.state.services = build_services(
            settings.orchestrator_config(),
            build_session_factory(engine),
            engine=engine,
        )

    startup_log.info("Orchestrator starting", env=settings.APP_ENV, version=__version__)
    yield
    startup_log.info("Orchestrator shutting down")

    if owns_services:
        await app.state.services.aclose()
        app.state.services = None


app = FastAPI(
    title="Bitware Orchestrator",
    description="Database-driven pipeline orchestration for the research workers",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error envelope ───────────────────────────────────────
def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@app.exception_handler(OrchestrationError)
async def orchestration_error_handler(request: Request, exc: OrchestrationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Orchestration error", path=request.url.path, error=exc.message)
        return error_response("Internal orchestration error", exc.status_code)
    logger.info("Request rejected", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return error_response(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    return error_response(message, 400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return error_response("Internal orchestration error", 500)


app.include_router(orchestration.router)
app.include_router(templates.router)
app.include_router(admin.router)
app.include_router(meta.router)
app.include_router(health.router)
