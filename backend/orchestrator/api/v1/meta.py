"""Static service description endpoints (public)."""

from __future__ import annotations

from fastapi import APIRouter

from orchestrator import __version__
from orchestrator.core.constants import Strategy

router = APIRouter(tags=["Meta"])

PIPELINE_WORKERS = [
    "topic_researcher",
    "rss_librarian",
    "feed_fetcher",
    "content_classifier",
    "report_builder",
]


@router.get("/help")
async def help_info():
    return {
        "worker": "bitware_orchestrator",
        "version": __version__,
        "description": "Database-driven pipeline orchestrator for the research workers",
        "endpoints": {
            "public": {
                "GET /health": "Database connectivity and worker binding check",
                "GET /help": "This help information",
                "GET /capabilities": "Orchestrator capabilities",
                "GET /templates": "Active pipeline templates",
                "GET /pipeline/{id}": "Pipeline execution status",
                "GET /pipelines": "Recent pipeline executions",
            },
            "main": {
                "POST /orchestrate": "Run a pipeline template and wait for the result",
                "POST /orchestrate/queue": "Queue a pipeline run in the background",
                "GET /pipeline-health": "Health of every active worker",
            },
            "admin": {
                "GET /admin/stats": "Execution statistics (worker auth)",
            },
        },
        "execution_strategies": {
            Strategy.SPEED_OPTIMIZED: "optimize_for=speed",
            Strategy.COST_OPTIMIZED: "optimize_for=cost",
            Strategy.QUALITY_OPTIMIZED: "optimize_for=quality",
            Strategy.BALANCED: "default",
        },
    }


@router.get("/capabilities")
async def capabilities():
    return {
        "worker_type": "PipelineOrchestrator",
        "role": "Run database-defined pipeline templates against the research workers",
        "pipeline_workers": PIPELINE_WORKERS,
        "orchestration_capabilities": {
            "execution_strategies": len(Strategy),
            "sequential_steps": True,
            "conditional_steps": True,
            "optional_steps": True,
            "background_execution": True,
        },
    }
