"""
Mapping engine — pure functions that move data between pipeline state
and worker payloads, and gate steps on their conditions.

Mapping expressions are either literals or path expressions of the form
``$.a.b.c``: dot-separated field access against a JSON-like tree.  Path
resolution is total: a missing key, an out-of-range index or a
non-container anywhere along the path yields the default, never an error.

None of these functions mutate their inputs.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from orchestrator.core.logging import get_logger
from orchestrator.pipeline.definitions import PipelineStep

logger = get_logger(__name__)

PATH_PREFIX = "$."

# Sentinel for "path did not resolve" (distinct from a resolved null).
MISSING: Any = object()

# Condition key -> pipeline-state field whose size is compared.
# Unknown condition keys are ignored.
CONDITION_FIELDS: dict[str, str] = {
    "sources_available": "sources",
    "articles_available": "articles",
}

_COMPARISON_RE = re.compile(r"^\s*(>=|<=|==|!=|>|<)?\s*(-?\d+(?:\.\d+)?)\s*$")

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


# ═══════════════════════════════════════════════════════════
#  Path resolution
# ═══════════════════════════════════════════════════════════

def is_path_expression(expr: Any) -> bool:
    return isinstance(expr, str) and expr.startswith(PATH_PREFIX)


def resolve_path(root: Any, path: str | None, default: Any = None) -> Any:
    """
    Walk `path` (dot-separated) through nested mappings and lists.

    Numeric segments index into lists.  Returns `default` as soon as a
    segment cannot be followed.
    """
    if path is None:
        return default

    current = root
    for segment in str(path).split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdigit():
                return default
            index = int(segment)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def _resolve_expression(root: Any, expr: str) -> Any:
    return resolve_path(root, expr[len(PATH_PREFIX):], MISSING)


# ═══════════════════════════════════════════════════════════
#  Conditions
# ═══════════════════════════════════════════════════════════

def count_of(value: Any) -> float:
    """Size of a collection, the value of a number, 0 for anything else."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return len(value)
    return 0


def parse_comparison(expr: Any) -> tuple[Callable[[float, float], bool], float] | None:
    """
    Parse ``"> 0"``, ``">= 5"``, ``"== 2"``...  A bare number means ``>=``.
    Returns None when the text is not a comparison.
    """
    match = _COMPARISON_RE.match(str(expr))
    if match is None:
        return None
    symbol, number = match.groups()
    return _OPERATORS[symbol or ">="], float(number)


def should_execute(step: PipelineStep, pipeline_state: Mapping[str, Any]) -> bool:
    """True when the step has no conditions or every recognised one passes."""
    for key, expr in (step.conditions or {}).items():
        field_name = CONDITION_FIELDS.get(key)
        if field_name is None:
            continue

        comparison = parse_comparison(expr)
        if comparison is None:
            logger.warning(
                "Unparseable step condition ignored",
                step_order=step.step_order,
                condition=key,
                expression=expr,
            )
            continue

        compare, threshold = comparison
        if not compare(count_of(pipeline_state.get(field_name)), threshold):
            return False
    return True


# ═══════════════════════════════════════════════════════════
#  Input / output mapping
# ═══════════════════════════════════════════════════════════

def feed_urls_from(sources: Sequence[Any]) -> list[str]:
    """URL of each source (dicts carry it under `url`, strings are URLs)."""
    urls = []
    for source in sources:
        if isinstance(source, str):
            urls.append(source)
        elif isinstance(source, Mapping) and source.get("url") is not None:
            urls.append(source["url"])
    return urls


def build_input(
    input_mapping: Mapping[str, Any] | None,
    pipeline_state: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Build a worker payload from pipeline state.

    Path expressions are resolved against the state (unresolved paths are
    left out of the payload); anything else is passed through verbatim.
    A `sources` list also yields a derived `feed_urls` list, which the
    feed fetcher expects.
    """
    payload: dict[str, Any] = {}
    for dest_key, expr in (input_mapping or {}).items():
        if is_path_expression(expr):
            value = _resolve_expression(pipeline_state, expr)
            if value is not MISSING:
                payload[dest_key] = value
        else:
            payload[dest_key] = expr

    sources = payload.get("sources")
    if isinstance(sources, list):
        payload["feed_urls"] = feed_urls_from(sources)

    return payload


def fold_output(
    output_mapping: Mapping[str, Any] | None,
    response_body: Any,
    pipeline_state: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Return a new pipeline state with the mapped response fields applied.

    A mapped field whose path is missing in the response is removed from
    the new state.  Non-path entries in the mapping are ignored.
    `all_sources` is recomputed from `sources` and `additional_sources`.
    """
    new_state = dict(pipeline_state)

    for state_key, expr in (output_mapping or {}).items():
        if not is_path_expression(expr):
            continue
        value = _resolve_expression(response_body, expr)
        if value is MISSING:
            new_state.pop(state_key, None)
        else:
            new_state[state_key] = value

    sources = new_state.get("sources")
    additional = new_state.get("additional_sources")
    if isinstance(sources, list) and isinstance(additional, list):
        new_state["all_sources"] = sources + additional
    elif "sources" in new_state:
        new_state["all_sources"] = sources

    return new_state
