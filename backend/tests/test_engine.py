"""
Tests for PipelineExecutor: step ordering, conditional skips, failure
policy, status resolution and recorder hand-off.
"""

from unittest.mock import AsyncMock

import pytest

from orchestrator.core.config import OrchestratorConfig
from orchestrator.core.constants import ExecutionStatus, FailureKind, Strategy
from orchestrator.pipeline.engine import (
    WORKER_UNAVAILABLE_ERROR,
    build_initial_state,
    determine_strategy,
)
from orchestrator.pipeline.errors import (
    EmptyTemplateError,
    InvalidRequestError,
    TemplateNotFoundError,
)
from orchestrator.pipeline.recorder import ExecutionRecorder
from tests.support import ALPHA, BETA, GAMMA, step, template


class TestHelpers:
    """Test cases for strategy and initial state."""

    @pytest.mark.parametrize(
        ("hint", "expected"),
        [
            ("speed", Strategy.SPEED_OPTIMIZED),
            ("COST", Strategy.COST_OPTIMIZED),
            ("quality", Strategy.QUALITY_OPTIMIZED),
            ("balanced", Strategy.BALANCED),
            (None, Strategy.BALANCED),
            ("whatever", Strategy.BALANCED),
        ],
    )
    def test_determine_strategy(self, hint, expected):
        """Test optimize_for hints map to strategy names."""
        assert determine_strategy(hint) == expected

    def test_initial_state_defaults(self):
        """Test discovery defaults are added and request values win."""
        config = OrchestratorConfig(default_source_discovery_depth=3, default_max_articles=50)

        assert build_initial_state({"topic": "ai", "extra": 1}, config) == {
            "topic": "ai",
            "extra": 1,
            "source_discovery_depth": 3,
            "max_articles": 50,
        }
        assert build_initial_state({"topic": "ai", "max_articles": 5}, config)["max_articles"] == 5

    def test_initial_state_drops_nulls(self):
        """Test null request fields fall back to defaults."""
        state = build_initial_state({"topic": "ai", "max_articles": None}, OrchestratorConfig())
        assert state["max_articles"] == 50


class TestRequestErrors:
    """Request-level errors raise before any execution exists."""

    @pytest.mark.parametrize("request_body", [{}, {"topic": ""}, {"topic": "   "}, {"topic": 5}])
    async def test_missing_topic(self, make_executor, request_body):
        """Test a missing or blank topic is rejected."""
        executor = make_executor(template("basic", step(1, "alpha")))

        with pytest.raises(InvalidRequestError):
            await executor.run(request_body)

    async def test_unknown_template(self, make_executor, fake_workers):
        """Test an unknown template fails and nothing is recorded or called."""
        recorder = AsyncMock(spec=ExecutionRecorder)
        executor = make_executor(template("basic", step(1, "alpha")), recorder=recorder)

        with pytest.raises(TemplateNotFoundError) as exc_info:
            await executor.run({"topic": "ai", "pipeline_template": "does-not-exist"})

        assert exc_info.value.status_code == 404
        assert "does-not-exist" in exc_info.value.message
        recorder.start.assert_not_awaited()
        recorder.record.assert_not_awaited()
        assert fake_workers.calls == []

    async def test_inactive_template(self, make_executor):
        """Test inactive templates are treated as unknown."""
        executor = make_executor(template("old", step(1, "alpha"), is_active=False))

        with pytest.raises(TemplateNotFoundError):
            await executor.run({"topic": "ai", "pipeline_template": "old"})

    async def test_empty_template(self, make_executor):
        """Test a template with zero steps fails fast."""
        executor = make_executor(template("empty"))

        with pytest.raises(EmptyTemplateError):
            await executor.run({"topic": "ai", "pipeline_template": "empty"})

    async def test_default_template_used(self, make_executor, fake_workers):
        """Test the configured default template runs when none is named."""
        fake_workers.respond("alpha.test", json_body={})
        executor = make_executor(template("rss_intelligence", step(1, "alpha")))

        execution = await executor.run({"topic": "ai"})

        assert execution.template_name == "rss_intelligence"


class TestExecution:
    """Test cases for the step loop."""

    async def test_single_step_completes(self, make_executor, fake_workers):
        """Test a one-step pipeline with a mapped list output."""
        fake_workers.respond("alpha.test", json_body={"items": [1, 2, 3]})
        executor = make_executor(
            template("basic", step(1, "alpha", output_mapping={"count": "$.items"}))
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert execution.status == ExecutionStatus.COMPLETED
        assert len(execution.worker_results) == 1
        assert execution.worker_results[0].success is True
        assert execution.final_state["count"] == [1, 2, 3]
        assert len(execution.final_state["count"]) == 3
        assert execution.completed_at is not None
        assert execution.error is None

    async def test_steps_run_in_step_order(self, make_executor, fake_workers):
        """Test invocation order follows step_order, not storage order."""
        for host in ("alpha.test", "beta.test", "gamma.test"):
            fake_workers.respond(host, json_body={})
        executor = make_executor(
            template("shuffled", step(30, "gamma"), step(10, "alpha"), step(20, "beta"))
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "shuffled"})

        assert fake_workers.called_hosts == ["alpha.test", "beta.test", "gamma.test"]
        assert [r.step_order for r in execution.worker_results] == [10, 20, 30]

    async def test_condition_skip_records_nothing(self, make_executor, fake_workers):
        """Test a step gated on empty sources is skipped silently and the run is partial."""
        fake_workers.respond("alpha.test", json_body={"sources": []})
        fake_workers.respond("gamma.test", json_body={})
        executor = make_executor(
            template(
                "gated",
                step(1, "alpha", output_mapping={"sources": "$.sources"}),
                step(2, "beta", conditions={"sources_available": "> 0"}),
                step(3, "gamma"),
            )
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "gated"})

        assert [r.worker_name for r in execution.worker_results] == ["alpha", "gamma"]
        assert "beta.test" not in fake_workers.called_hosts
        assert execution.status == ExecutionStatus.PARTIAL

    async def test_skipped_optional_step_still_completes(self, make_executor, fake_workers):
        """Test skipping an optional gated step does not downgrade the run."""
        fake_workers.respond("alpha.test", json_body={"sources": []})
        fake_workers.respond("gamma.test", json_body={})
        executor = make_executor(
            template(
                "gated-optional",
                step(1, "alpha", output_mapping={"sources": "$.sources"}),
                step(2, "beta", is_optional=True, conditions={"sources_available": "> 0"}),
                step(3, "gamma"),
            )
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "gated-optional"})

        assert [r.worker_name for r in execution.worker_results] == ["alpha", "gamma"]
        assert execution.status == ExecutionStatus.COMPLETED

    async def test_required_failure_stops_loop(self, make_executor, fake_workers):
        """Test a failed required step ends the run with partial status."""
        fake_workers.respond("alpha.test", json_body={"ok": True})
        fake_workers.respond("beta.test", status_code=500, json_body={"error": "boom"})
        fake_workers.respond("gamma.test", json_body={})
        executor = make_executor(
            template("two-step", step(1, "alpha"), step(2, "beta"), step(3, "gamma"))
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "two-step"})

        assert execution.status == ExecutionStatus.PARTIAL
        assert len(execution.worker_results) == 2
        assert execution.worker_results[1].success is False
        assert execution.worker_results[1].error
        assert "gamma.test" not in fake_workers.called_hosts
        assert execution.error.startswith("Step 2 (beta) failed")

    async def test_first_required_failure_is_failed(self, make_executor, fake_workers):
        """Test a run whose first required step fails has status failed."""
        fake_workers.respond("alpha.test", status_code=503)
        executor = make_executor(template("basic", step(1, "alpha"), step(2, "beta")))

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert execution.status == ExecutionStatus.FAILED
        assert len(execution.worker_results) == 1

    async def test_optional_failure_continues_with_unchanged_state(self, make_executor, fake_workers):
        """Test the next step sees the state from before the failed optional step."""
        fake_workers.respond("alpha.test", status_code=500)
        fake_workers.respond("beta.test", json_body={"done": True})
        executor = make_executor(
            template(
                "optional",
                step(1, "alpha", is_optional=True, output_mapping={"marker": "$.marker"}),
                step(2, "beta", input_mapping={"marker": "$.marker", "topic": "$.topic"}),
            )
        )

        execution = await executor.run(
            {"topic": "ai", "pipeline_template": "optional", "marker": "original"}
        )

        assert fake_workers.json_body("beta.test") == {"marker": "original", "topic": "ai"}
        assert [r.success for r in execution.worker_results] == [False, True]
        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.error is None

    async def test_single_optional_failure_is_failed(self, make_executor, fake_workers):
        """Test zero successes means failed, without raising."""
        fake_workers.respond("alpha.test", status_code=500)
        executor = make_executor(template("lonely", step(1, "alpha", is_optional=True)))

        execution = await executor.run({"topic": "ai", "pipeline_template": "lonely"})

        assert execution.status == ExecutionStatus.FAILED
        assert len(execution.worker_results) == 1
        assert execution.worker_results[0].success is False

    async def test_all_steps_skipped_is_failed(self, make_executor, fake_workers):
        """Test a run with no results at all ends failed."""
        executor = make_executor(
            template("never", step(1, "alpha", conditions={"articles_available": "> 0"}))
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "never"})

        assert execution.status == ExecutionStatus.FAILED
        assert execution.worker_results == []
        assert fake_workers.calls == []

    async def test_inactive_worker_fails_step_without_call(self, make_executor, fake_workers):
        """Test an inactive worker yields a synthesized failure."""
        from dataclasses import replace

        fake_workers.respond("alpha.test", json_body={})
        executor = make_executor(
            template("basic", step(1, "alpha"), step(2, "beta")),
            workers=(ALPHA, replace(BETA, is_active=False), GAMMA),
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        failed = execution.worker_results[1]
        assert failed.success is False
        assert failed.error == WORKER_UNAVAILABLE_ERROR
        assert failed.bottlenecks_detected == (FailureKind.WORKER_UNAVAILABLE,)
        assert "beta.test" not in fake_workers.called_hosts
        assert execution.status == ExecutionStatus.PARTIAL

    async def test_unregistered_worker_fails_step(self, make_executor, fake_workers):
        """Test a step naming an unknown worker fails that step."""
        executor = make_executor(template("ghost", step(1, "ghost", is_optional=True)))

        execution = await executor.run({"topic": "ai", "pipeline_template": "ghost"})

        assert execution.worker_results[0].error == WORKER_UNAVAILABLE_ERROR
        assert execution.status == ExecutionStatus.FAILED

    async def test_registry_error_becomes_failed_result(self, config, invoker):
        """Test an exception from the registry does not escape the loop."""
        from orchestrator.pipeline.engine import PipelineExecutor
        from orchestrator.pipeline.stores import InMemoryTemplateStore

        registry = AsyncMock()
        registry.get_worker.side_effect = RuntimeError("registry down")
        executor = PipelineExecutor(
            template_store=InMemoryTemplateStore([template("basic", step(1, "alpha"))]),
            worker_registry=registry,
            invoker=invoker,
            config=config,
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert execution.status == ExecutionStatus.FAILED
        assert "registry down" in execution.worker_results[0].error

    async def test_request_fields_reach_payload(self, make_executor, fake_workers):
        """Test request extras and defaults are available to input mappings."""
        fake_workers.respond("alpha.test", json_body={})
        executor = make_executor(
            template(
                "basic",
                step(1, "alpha", input_mapping={
                    "topic": "$.topic",
                    "depth": "$.source_discovery_depth",
                    "limit": "$.max_articles",
                    "region": "$.region",
                }),
            )
        )

        await executor.run({"topic": "ai", "pipeline_template": "basic", "region": "eu"})

        params = fake_workers.last_call_to("alpha.test").url.params
        assert params["topic"] == "ai"
        assert params["depth"] == "3"
        assert params["limit"] == "50"
        assert params["region"] == "eu"

    async def test_outputs_flow_between_steps(self, make_executor, fake_workers):
        """Test a later step receives an earlier step's mapped output."""
        fake_workers.respond("alpha.test", json_body={
            "sources": [{"url": "http://feed-1"}, {"url": "http://feed-2"}],
        })
        fake_workers.respond("beta.test", json_body={"articles": [1, 2, 3]})
        executor = make_executor(
            template(
                "chain",
                step(1, "alpha", output_mapping={"sources": "$.sources"}),
                step(
                    2, "beta",
                    conditions={"sources_available": "> 0"},
                    input_mapping={"sources": "$.all_sources"},
                    output_mapping={"articles": "$.articles"},
                ),
            )
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "chain"})

        assert fake_workers.json_body("beta.test")["feed_urls"] == ["http://feed-1", "http://feed-2"]
        assert execution.sources_discovered == 2
        assert execution.articles_processed == 3

    async def test_aggregates(self, make_executor, fake_workers):
        """Test cost is summed and quality averaged over successful results."""
        fake_workers.respond("alpha.test", json_body={"cost_usd": 0.02, "quality_score": 0.8})
        fake_workers.respond("beta.test", json_body={"estimated_cost_usd": 0.03, "avg_quality_score": 0.6})
        fake_workers.respond("gamma.test", json_body={})
        executor = make_executor(
            template("metrics", step(1, "alpha"), step(2, "beta"), step(3, "gamma"))
        )

        execution = await executor.run({"topic": "ai", "pipeline_template": "metrics"})

        assert execution.total_cost_usd == pytest.approx(0.05)
        assert execution.final_quality_score == pytest.approx(0.7)
        assert execution.total_execution_time_ms >= 0

    async def test_strategy_and_execution_id(self, make_executor, fake_workers):
        """Test the strategy hint is recorded and a supplied id is used."""
        fake_workers.respond("alpha.test", json_body={})
        executor = make_executor(template("basic", step(1, "alpha")))

        execution = await executor.run(
            {"topic": "ai", "pipeline_template": "basic", "optimize_for": "cost"},
            execution_id="pipe_fixed",
        )

        assert execution.id == "pipe_fixed"
        assert execution.strategy == Strategy.COST_OPTIMIZED

    async def test_generated_ids_are_unique(self, make_executor, fake_workers):
        """Test each run gets its own id."""
        fake_workers.respond("alpha.test", json_body={})
        executor = make_executor(template("basic", step(1, "alpha")))

        first = await executor.run({"topic": "ai", "pipeline_template": "basic"})
        second = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert first.id != second.id
        assert first.id.startswith("pipe_")

    async def test_repeat_runs_are_equivalent(self, make_executor, fake_workers):
        """Test identical requests and responses give identical outcomes."""
        fake_workers.respond("alpha.test", json_body={"sources": ["http://a"], "total_articles": 4})
        fake_workers.respond("beta.test", status_code=500)
        fake_workers.respond("gamma.test", json_body={"articles": [1, 2]})
        executor = make_executor(
            template(
                "repeat",
                step(1, "alpha", output_mapping={"sources": "$.sources"}),
                step(2, "beta", is_optional=True),
                step(3, "gamma", output_mapping={"articles": "$.articles"}),
            )
        )
        request = {"topic": "ai", "pipeline_template": "repeat"}

        first = await executor.run(request)
        second = await executor.run(request)

        assert first.status == second.status == ExecutionStatus.COMPLETED
        assert first.sources_discovered == second.sources_discovered == 1
        assert first.articles_processed == second.articles_processed == 2
        assert [r.success for r in first.worker_results] == [r.success for r in second.worker_results]


class TestRecorderHandOff:
    """Test cases for the recorder integration."""

    async def test_start_and_record(self, make_executor, fake_workers):
        """Test the running header is written first, the final execution last."""
        fake_workers.respond("alpha.test", json_body={})
        recorder = AsyncMock(spec=ExecutionRecorder)
        executor = make_executor(template("basic", step(1, "alpha")), recorder=recorder)

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        recorder.start.assert_awaited_once_with(execution)
        recorder.record.assert_awaited_once_with(execution)
        assert execution.is_terminal

    async def test_recorder_failure_does_not_change_response(self, make_executor, fake_workers):
        """Test a recorder reporting failure leaves the execution intact."""
        fake_workers.respond("alpha.test", json_body={})
        recorder = AsyncMock(spec=ExecutionRecorder)
        recorder.start.return_value = False
        recorder.record.return_value = False
        executor = make_executor(template("basic", step(1, "alpha")), recorder=recorder)

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert execution.status == ExecutionStatus.COMPLETED

    async def test_recorder_exception_is_contained(self, make_executor, fake_workers):
        """Test an unexpected recorder exception never escapes the run."""
        fake_workers.respond("alpha.test", json_body={})
        recorder = AsyncMock(spec=ExecutionRecorder)
        recorder.start.side_effect = RuntimeError("pool exhausted")
        recorder.record.side_effect = ValueError("unserialisable")
        executor = make_executor(template("basic", step(1, "alpha")), recorder=recorder)

        execution = await executor.run({"topic": "ai", "pipeline_template": "basic"})

        assert execution.status == ExecutionStatus.COMPLETED
        assert len(execution.worker_results) == 1
        recorder.record.assert_awaited_once_with(execution)
