"""
PipelineExecutor — the orchestration loop.

Responsibilities:
    - Resolve the named template and order its steps
    - Seed pipeline state from the request
    - For each step: check conditions, resolve the worker, build the
      input payload, invoke the worker, fold the output into state
    - Apply failure policy (required step fails -> stop, optional -> skip)
    - Compute final status and aggregate metrics
    - Hand the finished execution to the recorder (best-effort)

Only three request-level problems raise (missing topic, unknown template,
template with no steps), before any execution exists.  Everything that
goes wrong inside the loop ends up in a WorkerResult.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from orchestrator.core.config import OrchestratorConfig
from orchestrator.core.constants import FailureKind, Strategy
from orchestrator.core.logging import get_logger
from orchestrator.pipeline import metrics
from orchestrator.pipeline.context import (
    PipelineExecution,
    WorkerResult,
    generate_execution_id,
)
from orchestrator.pipeline.definitions import PipelineStep
from orchestrator.pipeline.errors import (
    EmptyTemplateError,
    InvalidRequestError,
    TemplateNotFoundError,
)
from orchestrator.pipeline.invoker import WorkerInvoker
from orchestrator.pipeline.mapping import build_input, fold_output, should_execute
from orchestrator.pipeline.stores import TemplateStore, WorkerRegistry

WORKER_UNAVAILABLE_ERROR = "worker not found or inactive"

_STRATEGIES = {
    "speed": Strategy.SPEED_OPTIMIZED,
    "cost": Strategy.COST_OPTIMIZED,
    "quality": Strategy.QUALITY_OPTIMIZED,
}


def determine_strategy(optimize_for: str | None) -> Strategy:
    """Map the request's `optimize_for` hint to a recorded strategy name."""
    return _STRATEGIES.get((optimize_for or "").lower(), Strategy.BALANCED)


def build_initial_state(request: Mapping[str, Any], config: OrchestratorConfig) -> dict[str, Any]:
    """Request fields verbatim (nulls dropped) plus discovery defaults."""
    state = {key: value for key, value in request.items() if value is not None}
    state.setdefault("source_discovery_depth", config.default_source_discovery_depth)
    state.setdefault("max_articles", config.default_max_articles)
    return state


class PipelineExecutor:
    """
    Runs a database-defined pipeline template against a request.

    Usage::

        executor = PipelineExecutor(
            template_store=SqlTemplateStore(session_factory),
            worker_registry=SqlWorkerRegistry(session_factory),
            invoker=WorkerInvoker(config),
            recorder=ExecutionRecorder(session_factory),
            config=config,
        )
        execution = await executor.run({"topic": "quantum computing"})
    """

    def __init__(
        self,
        template_store: TemplateStore,
        worker_registry: WorkerRegistry,
        invoker: WorkerInvoker,
        recorder=None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self.template_store = template_store
        self.worker_registry = worker_registry
        self.invoker = invoker
        self.recorder = recorder
        self.config = config or OrchestratorConfig()
        self.logger = get_logger(__name__)

    async def run(
        self,
        request: Mapping[str, Any],
        execution_id: str | None = None,
    ) -> PipelineExecution:
        """
        Full pipeline execution.

        Args:
            request: Orchestration request fields.  `topic` is required;
                     `pipeline_template` defaults to the configured template;
                     everything else is passed through into pipeline state.
            execution_id: Use this id instead of generating one (the queued
                          path hands out the id before the run starts).

        Raises:
            InvalidRequestError: `topic` missing or blank.
            TemplateNotFoundError: no active template with that name.
            EmptyTemplateError: the template has no steps.
        """
        topic = request.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise InvalidRequestError("Missing required field: topic")

        template_name = request.get("pipeline_template") or self.config.default_template

        # ── Resolve template ──────────────────────────
        template = await self.template_store.get_template(template_name)
        if template is None:
            raise TemplateNotFoundError(template_name)

        steps = template.ordered_steps()
        if not steps:
            raise EmptyTemplateError(template_name)

        # ── Create execution ──────────────────────────
        execution = PipelineExecution(
            id=execution_id or generate_execution_id(),
            topic=topic,
            template_name=template_name,
            strategy=determine_strategy(request.get("optimize_for")),
            request=dict(request),
        )

        log = self.logger.bind(
            execution_id=execution.id,
            template_name=template_name,
            topic=topic,
        )
        log.info("Pipeline started", total_steps=len(steps), strategy=str(execution.strategy))

        await self._persist("start", execution, log)

        started = time.perf_counter()
        state = build_initial_state(request, self.config)

        # ── Run steps ─────────────────────────────────
        for step in steps:
            step_log = log.bind(
                step_order=step.step_order,
                worker_name=step.worker_name,
                step_name=step.step_name,
            )

            if not should_execute(step, state):
                step_log.info("Step skipped, conditions not met", conditions=step.conditions)
                continue

            step_log.info("Step started", optional=step.is_optional)
            result = await self._run_step(step, state, step_log)
            execution.add_result(result)

            if result.success:
                state = fold_output(step.output_mapping, result.data, state)
                step_log.info(
                    "Step completed",
                    duration_ms=result.execution_time_ms,
                    cost_usd=result.cost_usd,
                    bottlenecks=list(result.bottlenecks_detected),
                )
                continue

            if step.is_optional:
                step_log.warning("Optional step failed, continuing", error=result.error)
                continue

            step_log.error("Required step failed, pipeline stopping", error=result.error)
            execution.error = f"Step {step.step_order} ({step.label}) failed: {result.error}"
            break

        # ── Finalise ──────────────────────────────────
        self._finalise(execution, template.ordered_steps(), state, started)

        log.info(
            "Pipeline finished",
            status=str(execution.status),
            results=len(execution.worker_results),
            duration_ms=execution.total_execution_time_ms,
            total_cost_usd=execution.total_cost_usd,
        )

        await self._persist("record", execution, log)

        return execution

    async def _persist(self, action: str, execution: PipelineExecution, log) -> None:
        """Hand the execution to the recorder.  Never raises."""
        if self.recorder is None:
            return
        try:
            await getattr(self.recorder, action)(execution)
        except Exception as exc:
            log.warning("Execution recorder raised, continuing", action=action, error=str(exc))

    async def _run_step(
        self,
        step: PipelineStep,
        state: Mapping[str, Any],
        log,
    ) -> WorkerResult:
        """Resolve the worker and invoke it.  Always returns a WorkerResult."""
        try:
            worker = await self.worker_registry.get_worker(step.worker_name)
        except Exception as exc:
            log.exception("Worker lookup failed", error=str(exc))
            return self._unavailable(step, f"worker lookup failed: {exc}")

        if worker is None or not worker.is_active:
            log.warning("Worker not found or inactive")
            return self._unavailable(step, WORKER_UNAVAILABLE_ERROR)

        payload = build_input(step.input_mapping, state)
        return await self.invoker.invoke_worker(worker, step, payload)

    @staticmethod
    def _unavailable(step: PipelineStep, error: str) -> WorkerResult:
        return WorkerResult(
            worker_name=step.worker_name,
            step_order=step.step_order,
            step_name=step.step_name,
            success=False,
            error=error,
            bottlenecks_detected=(FailureKind.WORKER_UNAVAILABLE,),
        )

    @staticmethod
    def _finalise(
        execution: PipelineExecution,
        steps: list[PipelineStep],
        state: dict[str, Any],
        started: float,
    ) -> None:
        results = execution.worker_results
        required_orders = [s.step_order for s in steps if not s.is_optional]

        execution.total_execution_time_ms = int((time.perf_counter() - started) * 1000)
        execution.total_cost_usd = metrics.total_cost(results)
        execution.final_quality_score = metrics.quality_score(results)
        execution.sources_discovered = metrics.sources_discovered(state, results)
        execution.articles_processed = metrics.articles_processed(state, results)
        execution.final_state = state
        execution.finish(metrics.resolve_status(results, required_orders))
