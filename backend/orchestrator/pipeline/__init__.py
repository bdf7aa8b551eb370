"""
Pipeline engine — runs database-defined templates against the worker
services.

The executor walks a template's steps in order, gates each on its
conditions, maps pipeline state into the worker payload, invokes the
worker over HTTP and folds the response back into state.
"""

from orchestrator.pipeline.context import PipelineExecution, WorkerResult
from orchestrator.pipeline.definitions import PipelineStep, PipelineTemplate, WorkerDescriptor
from orchestrator.pipeline.engine import PipelineExecutor

__all__ = [
    "PipelineExecutor",
    "PipelineExecution",
    "WorkerResult",
    "PipelineStep",
    "PipelineTemplate",
    "WorkerDescriptor",
]
