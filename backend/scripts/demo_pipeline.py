#!/usr/bin/env python3
"""
Demo script — run the orchestrator locally without a database, Celery
or real workers.

The default catalog is loaded into the in-memory stores and every worker
is answered by an httpx.MockTransport, so all network traffic stays in
process.  Shows a full run, a run where the optional librarian fails, and
a run that stops on a failed required step.

Usage:
    cd backend
    python -m scripts.demo_pipeline
"""

import asyncio
import json

import httpx

from orchestrator.catalog import DEFAULT_TEMPLATES, DEFAULT_WORKERS
from orchestrator.core.config import OrchestratorConfig
from orchestrator.pipeline.engine import PipelineExecutor
from orchestrator.pipeline.invoker import WorkerInvoker
from orchestrator.pipeline.stores import InMemoryTemplateStore, InMemoryWorkerRegistry

BINDINGS = {w.binding_ref: f"http://{w.name.replace('_', '-')}.local" for w in DEFAULT_WORKERS}

ARTICLES = [
    {"url": "https://example.org/a1", "title": "Qubits at room temperature"},
    {"url": "https://example.org/a2", "title": "Error correction milestones"},
]


def fake_workers(*, failing: frozenset[str] = frozenset()) -> httpx.MockTransport:
    """A transport answering like the five research workers."""

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host.split(".")[0].replace("-", "_") in failing:
            return httpx.Response(503, json={"error": "unavailable"})

        if host.startswith("topic-researcher"):
            return httpx.Response(200, json={
                "sources": [
                    {"url": "https://feeds.example.org/quantum.xml", "quality_score": 0.9},
                    {"url": "https://news.example.com/rss", "quality_score": 0.7},
                ],
                "cost_usd": 0.02,
            })
        if host.startswith("rss-librarian"):
            return httpx.Response(200, json={
                "feeds": [{"url": "https://curated.example.net/feed"}],
                "cached": True,
            })
        if host.startswith("feed-fetcher"):
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "articles": ARTICLES,
                "total_articles": len(ARTICLES),
                "feeds_processed": len(body.get("feed_urls", [])),
            })
        if host.startswith("content-classifier"):
            return httpx.Response(200, json={
                "analyzed_articles": [{**a, "relevance": 0.8} for a in ARTICLES],
                "avg_quality_score": 0.82,
                "estimated_cost_usd": 0.04,
            })
        if host.startswith("report-builder"):
            return httpx.Response(200, json={
                "report": {"executive_summary": "Steady progress in quantum hardware."},
                "quality_score": 0.88,
                "cost_usd": 0.03,
            })
        return httpx.Response(404)

    return httpx.MockTransport(handler)


async def run_demo(title: str, request: dict, *, failing: frozenset[str] = frozenset()):
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)

    config = OrchestratorConfig(worker_shared_secret="demo-secret", worker_bindings=BINDINGS)
    async with WorkerInvoker(config, transport=fake_workers(failing=failing)) as invoker:
        executor = PipelineExecutor(
            template_store=InMemoryTemplateStore(DEFAULT_TEMPLATES),
            worker_registry=InMemoryWorkerRegistry(DEFAULT_WORKERS),
            invoker=invoker,
            config=config,
        )
        execution = await executor.run(request)

    _print_execution(execution)


def _print_execution(execution):
    print(f"\n  Pipeline:  {execution.id}")
    print(f"  Template:  {execution.template_name}  strategy={execution.strategy}")
    print(f"  Status:    {execution.status}")
    print(f"  Sources:   {execution.sources_discovered}   Articles: {execution.articles_processed}")
    print(f"  Quality:   {execution.final_quality_score}   Cost: ${execution.total_cost_usd}")
    if execution.error:
        print(f"  Error:     {execution.error}")
    print("\n  Steps:")
    for r in execution.worker_results:
        mark = "✓" if r.success else "✗"
        tags = f"  [{', '.join(r.bottlenecks_detected)}]" if r.bottlenecks_detected else ""
        print(f"    {mark} {r.step_order}. {r.worker_name:<20} {r.execution_time_ms:>5} ms{tags}")
        if r.error:
            print(f"        {r.error}")


async def main():
    from orchestrator.core.logging import setup_logging
    setup_logging("WARNING")     # quiet logs, show formatted output only

    print("\n╔" + "═" * 68 + "╗")
    print("║           BITWARE ORCHESTRATOR — PIPELINE DEMO                    ║")
    print("╚" + "═" * 68 + "╝")

    await run_demo(
        "DEMO 1: rss_intelligence, all workers healthy",
        {"topic": "quantum computing", "optimize_for": "quality"},
    )
    await run_demo(
        "DEMO 2: optional RSS librarian down",
        {"topic": "quantum computing"},
        failing=frozenset({"rss_librarian"}),
    )
    await run_demo(
        "DEMO 3: required feed fetcher down (partial)",
        {"topic": "quantum computing", "optimize_for": "speed"},
        failing=frozenset({"feed_fetcher"}),
    )
    await run_demo(
        "DEMO 4: quick_research",
        {"topic": "solid state batteries", "pipeline_template": "quick_research"},
    )

    print("\n✅ All demos completed.\n")


if __name__ == "__main__":
    asyncio.run(main())
