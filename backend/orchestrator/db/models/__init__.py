"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.
"""

from orchestrator.db.models.base import Base
from orchestrator.db.models.pipeline_run import PipelineRun, WorkerResultLog
from orchestrator.db.models.pipeline_template import TemplateRecord, TemplateStepRecord
from orchestrator.db.models.worker_registration import WorkerRegistration

__all__ = [
    "Base",
    "PipelineRun",
    "TemplateRecord",
    "TemplateStepRecord",
    "WorkerRegistration",
    "WorkerResultLog",
]
