"""
Tests for the mapping engine: path resolution, step conditions and
input/output mapping.
"""

import pytest

from orchestrator.pipeline.mapping import (
    build_input,
    count_of,
    fold_output,
    parse_comparison,
    resolve_path,
    should_execute,
)
from tests.support import step


class TestResolvePath:
    """Test cases for resolve_path."""

    def test_nested_mappings(self):
        """Test walking nested dicts."""
        assert resolve_path({"a": {"b": {"c": 7}}}, "a.b.c") == 7

    def test_list_index_segment(self):
        """Test numeric segments index into lists."""
        assert resolve_path({"items": [{"url": "x"}, {"url": "y"}]}, "items.1.url") == "y"

    @pytest.mark.parametrize("root", [{}, None, [], "text", 42])
    def test_missing_at_any_depth_returns_default(self, root):
        """Test resolution never raises on empty or non-container roots."""
        assert resolve_path(root, "a") is None
        assert resolve_path(root, "a.b.c.d") is None

    def test_non_container_midway(self):
        """Test a scalar in the middle of the path stops resolution."""
        assert resolve_path({"a": 5}, "a.b") is None

    def test_index_out_of_range(self):
        """Test an index past the end of a list is missing."""
        assert resolve_path({"items": [1]}, "items.3") is None

    def test_resolved_null_is_not_missing(self):
        """Test an explicit null is returned rather than the default."""
        assert resolve_path({"a": None}, "a", default="missing") is None

    def test_custom_default(self):
        """Test the default is returned for unresolved paths."""
        assert resolve_path({}, "x", default="fallback") == "fallback"


class TestConditions:
    """Test cases for parse_comparison, count_of and should_execute."""

    @pytest.mark.parametrize(
        ("expr", "value", "expected"),
        [
            ("> 0", 1, True),
            ("> 0", 0, False),
            (">= 2", 2, True),
            ("< 3", 3, False),
            ("<= 3", 3, True),
            ("== 1", 1, True),
            ("!= 1", 1, False),
            ("5", 5, True),
            ("5", 4, False),
        ],
    )
    def test_parse_comparison(self, expr, value, expected):
        """Test every supported operator; a bare number means >=."""
        compare, threshold = parse_comparison(expr)
        assert compare(value, threshold) is expected

    def test_unparseable_comparison(self):
        """Test free text is not a comparison."""
        assert parse_comparison("plenty") is None

    def test_count_of(self):
        """Test collection sizes, numbers and everything else."""
        assert count_of([1, 2, 3]) == 3
        assert count_of({"a": 1}) == 1
        assert count_of(4) == 4
        assert count_of(None) == 0
        assert count_of("abc") == 0

    def test_no_conditions_executes(self):
        """Test a step without conditions always runs."""
        assert should_execute(step(1, "alpha"), {}) is True

    def test_sources_available_with_empty_sources(self):
        """Test an empty sources list gates the step off."""
        gated = step(2, "beta", conditions={"sources_available": "> 0"})

        assert should_execute(gated, {"sources": []}) is False
        assert should_execute(gated, {}) is False
        assert should_execute(gated, {"sources": [{"url": "http://x"}]}) is True

    def test_articles_available(self):
        """Test the articles condition reads the articles list."""
        gated = step(3, "gamma", conditions={"articles_available": ">= 2"})

        assert should_execute(gated, {"articles": [1]}) is False
        assert should_execute(gated, {"articles": [1, 2]}) is True

    def test_unknown_condition_keys_ignored(self):
        """Test unrecognised conditions do not block the step."""
        gated = step(1, "alpha", conditions={"budget_ok": "> 100"})
        assert should_execute(gated, {}) is True

    def test_unparseable_condition_ignored(self):
        """Test a recognised key with a bad expression is skipped."""
        gated = step(1, "alpha", conditions={"sources_available": "lots"})
        assert should_execute(gated, {"sources": []}) is True

    def test_all_conditions_must_pass(self):
        """Test one failing condition is enough to skip."""
        gated = step(
            1, "alpha",
            conditions={"sources_available": "> 0", "articles_available": "> 0"},
        )
        assert should_execute(gated, {"sources": [1], "articles": []}) is False


class TestBuildInput:
    """Test cases for build_input."""

    def test_paths_and_literals(self):
        """Test path expressions resolve and literals pass through."""
        payload = build_input(
            {"topic": "$.topic", "depth": "$.opts.depth", "mode": "fast", "limit": 10},
            {"topic": "ai", "opts": {"depth": 2}},
        )

        assert payload == {"topic": "ai", "depth": 2, "mode": "fast", "limit": 10}

    def test_missing_path_omitted(self):
        """Test unresolved paths are left out of the payload."""
        assert build_input({"x": "$.nope"}, {"topic": "ai"}) == {}

    def test_empty_mapping(self):
        """Test an absent mapping gives an empty payload."""
        assert build_input(None, {"topic": "ai"}) == {}
        assert build_input({}, {"topic": "ai"}) == {}

    def test_feed_urls_derived_from_sources(self):
        """Test feed_urls takes each source's url, or the string itself."""
        state = {"all": [{"url": "http://x"}, "http://y", None, {"title": "no url"}]}

        payload = build_input({"sources": "$.all"}, state)

        assert payload["feed_urls"] == ["http://x", "http://y"]
        assert payload["sources"] == state["all"]

    def test_no_feed_urls_without_sources_list(self):
        """Test feed_urls only appears for a sources list."""
        assert "feed_urls" not in build_input({"sources": "literal"}, {})

    def test_state_not_mutated(self):
        """Test the pipeline state is left untouched."""
        state = {"sources": ["http://x"]}
        build_input({"sources": "$.sources"}, state)
        assert state == {"sources": ["http://x"]}


class TestFoldOutput:
    """Test cases for fold_output."""

    def test_maps_nested_value(self):
        """Test a nested response path is folded into state."""
        new_state = fold_output({"x": "$.a.b"}, {"a": {"b": 42}}, {"topic": "ai"})

        assert new_state == {"topic": "ai", "x": 42}

    def test_missing_path_leaves_key_absent(self):
        """Test a missing response path does not raise and leaves no value."""
        new_state = fold_output({"x": "$.a.b"}, {"a": {}}, {"topic": "ai"})

        assert "x" not in new_state

    def test_missing_path_removes_previous_value(self):
        """Test a mapped key missing from the response is cleared."""
        new_state = fold_output({"x": "$.a"}, {}, {"x": "stale"})

        assert "x" not in new_state

    def test_non_mapping_response(self):
        """Test a non-object response body resolves nothing."""
        assert fold_output({"x": "$.a"}, [1, 2], {"topic": "ai"}) == {"topic": "ai"}

    def test_literal_entries_ignored(self):
        """Test non-path mapping values are not written into state."""
        assert fold_output({"x": "constant"}, {"x": 1}, {}) == {}

    def test_input_state_not_mutated(self):
        """Test fold_output returns a new dict."""
        state = {"topic": "ai"}

        new_state = fold_output({"x": "$.x"}, {"x": 1}, state)

        assert state == {"topic": "ai"}
        assert new_state is not state

    def test_all_sources_concatenation(self):
        """Test sources and additional_sources are merged into all_sources."""
        state = {"sources": [{"url": "http://a"}]}

        new_state = fold_output(
            {"additional_sources": "$.feeds"},
            {"feeds": [{"url": "http://b"}]},
            state,
        )

        assert new_state["all_sources"] == [{"url": "http://a"}, {"url": "http://b"}]

    def test_all_sources_defaults_to_sources(self):
        """Test all_sources mirrors sources when nothing else was found."""
        new_state = fold_output({"sources": "$.sources"}, {"sources": ["http://a"]}, {})

        assert new_state["all_sources"] == ["http://a"]

    def test_no_all_sources_without_sources(self):
        """Test all_sources is not invented."""
        assert "all_sources" not in fold_output({"x": "$.x"}, {"x": 1}, {})

    def test_empty_mapping_keeps_state(self):
        """Test an absent mapping returns an equal state."""
        assert fold_output(None, {"x": 1}, {"topic": "ai"}) == {"topic": "ai"}
