"""
Default worker registry and pipeline templates.

This is seed data: `scripts/seed_registry.py` upserts it into the
database, the demo script loads it into the in-memory stores.  Worker
endpoints and methods live here, in the descriptors, rather than in the
invoker.
"""

from __future__ import annotations

from orchestrator.core.constants import HttpMethod
from orchestrator.pipeline.definitions import PipelineStep, PipelineTemplate, WorkerDescriptor

# ═══════════════════════════════════════════════════════════
#  Workers
# ═══════════════════════════════════════════════════════════

DEFAULT_WORKERS: tuple[WorkerDescriptor, ...] = (
    WorkerDescriptor(
        name="topic_researcher",
        display_name="Topic Researcher",
        binding_ref="TOPIC_RESEARCHER",
        endpoints=("/", "/research"),
        default_method=HttpMethod.GET,
        input_format="topic, depth, min_quality",
        output_format="sources[] with url, title, quality_score",
        timeout_ms=60_000,
    ),
    WorkerDescriptor(
        name="rss_librarian",
        display_name="RSS Librarian",
        binding_ref="RSS_LIBRARIAN",
        endpoints=("/",),
        default_method=HttpMethod.GET,
        input_format="topic, max_feeds",
        output_format="feeds[] with url, title, quality_score",
        timeout_ms=15_000,
    ),
    WorkerDescriptor(
        name="feed_fetcher",
        display_name="Feed Fetcher",
        binding_ref="FEED_FETCHER",
        endpoints=("/batch", "/"),
        default_method=HttpMethod.POST,
        input_format="feed_urls[], max_articles_per_feed",
        output_format="articles[], total_articles",
        dependencies=frozenset({"topic_researcher"}),
        timeout_ms=90_000,
    ),
    WorkerDescriptor(
        name="content_classifier",
        display_name="Content Classifier",
        binding_ref="CONTENT_CLASSIFIER",
        endpoints=("/analyze", "/analyze/batch"),
        default_method=HttpMethod.POST,
        input_format="articles[], target_topic, analysis_depth",
        output_format="analyzed_articles[], avg_quality_score",
        dependencies=frozenset({"feed_fetcher"}),
        timeout_ms=120_000,
    ),
    WorkerDescriptor(
        name="report_builder",
        display_name="Report Builder",
        binding_ref="REPORT_BUILDER",
        endpoints=("/generate", "/quick-summary"),
        default_method=HttpMethod.POST,
        input_format="report_type, topic_filters[], articles[]",
        output_format="report, executive_summary, quality_score",
        dependencies=frozenset({"content_classifier"}),
        timeout_ms=90_000,
    ),
)

# ═══════════════════════════════════════════════════════════
#  Templates
# ═══════════════════════════════════════════════════════════

RSS_INTELLIGENCE = PipelineTemplate(
    name="rss_intelligence",
    display_name="RSS Intelligence Pipeline",
    description="Discover sources for a topic, fetch their articles, classify them and build a report.",
    category="research",
    complexity_level="standard",
    estimated_duration_ms=180_000,
    estimated_cost_usd=0.35,
    steps=(
        PipelineStep(
            step_order=1,
            worker_name="topic_researcher",
            step_name="Discover sources",
            input_mapping={
                "topic": "$.topic",
                "depth": "$.source_discovery_depth",
                "min_quality": 0.6,
            },
            output_mapping={"sources": "$.sources"},
        ),
        PipelineStep(
            step_order=2,
            worker_name="rss_librarian",
            step_name="Add curated feeds",
            is_optional=True,
            input_mapping={"topic": "$.topic", "max_feeds": 10},
            output_mapping={"additional_sources": "$.feeds"},
        ),
        PipelineStep(
            step_order=3,
            worker_name="feed_fetcher",
            step_name="Fetch articles",
            conditions={"sources_available": "> 0"},
            input_mapping={
                "sources": "$.all_sources",
                "max_articles_per_feed": 20,
            },
            output_mapping={"articles": "$.articles"},
            depends_on_steps=frozenset({1, 2}),
        ),
        PipelineStep(
            step_order=4,
            worker_name="content_classifier",
            step_name="Classify articles",
            conditions={"articles_available": "> 0"},
            input_mapping={
                "articles": "$.articles",
                "target_topic": "$.topic",
                "analysis_depth": "standard",
            },
            output_mapping={"analyzed_articles": "$.analyzed_articles"},
            depends_on_steps=frozenset({3}),
        ),
        PipelineStep(
            step_order=5,
            worker_name="report_builder",
            step_name="Build report",
            input_mapping={
                "report_type": "executive_summary",
                "topic_filters": "$.topic",
                "articles": "$.analyzed_articles",
            },
            output_mapping={"report": "$.report"},
            depends_on_steps=frozenset({4}),
        ),
    ),
)

QUICK_RESEARCH = PipelineTemplate(
    name="quick_research",
    display_name="Quick Research",
    description="Source discovery followed by a short summary.",
    category="research",
    complexity_level="basic",
    estimated_duration_ms=60_000,
    estimated_cost_usd=0.05,
    steps=(
        PipelineStep(
            step_order=1,
            worker_name="topic_researcher",
            step_name="Discover sources",
            input_mapping={"topic": "$.topic", "depth": 1},
            output_mapping={"sources": "$.sources"},
        ),
        PipelineStep(
            step_order=2,
            worker_name="report_builder",
            step_name="Quick summary",
            is_optional=True,
            conditions={"sources_available": "> 0"},
            input_mapping={
                "report_type": "daily_briefing",
                "topic_filters": "$.topic",
                "sources": "$.sources",
            },
            output_mapping={"report": "$.report"},
            depends_on_steps=frozenset({1}),
        ),
    ),
)

DEFAULT_TEMPLATES: tuple[PipelineTemplate, ...] = (RSS_INTELLIGENCE, QUICK_RESEARCH)
