"""
WorkerInvoker — performs one HTTP call to a worker and normalises the outcome.

Every call, whatever happens (unknown binding, connection error, non-2xx,
timeout, bad JSON), comes back as a WorkerResult.  The executor's loop is
never interrupted by an exception from here.

Usage::

    async with WorkerInvoker(config) as invoker:
        result = await invoker.invoke_worker(worker, step, payload)
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Mapping
from typing import Any

import httpx

from orchestrator.core.config import OrchestratorConfig
from orchestrator.core.constants import (
    CACHE_FIELDS,
    CACHE_MISS_MS,
    COST_FIELDS,
    HEALTH_CHECK_TIMEOUT_MS,
    HEALTH_ENDPOINT,
    HIGH_COST_USD,
    SLOW_EXECUTION_MS,
    WORKER_ID_HEADER,
    Bottleneck,
    FailureKind,
    HttpMethod,
    WorkerHealth,
)
from orchestrator.core.logging import get_logger
from orchestrator.pipeline.context import WorkerResult
from orchestrator.pipeline.definitions import PipelineStep, WorkerDescriptor
from orchestrator.pipeline.errors import WorkerInvocationError

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════

def _query_value(value: Any) -> str:
    """Render one payload value as a query-string value.  Lists are comma-joined."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def build_query_params(payload: Mapping[str, Any] | None) -> dict[str, str]:
    return {
        key: _query_value(value)
        for key, value in (payload or {}).items()
        if value is not None
    }


def extract_cost(data: Any) -> float:
    if not isinstance(data, Mapping):
        return 0.0
    for key in COST_FIELDS:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return 0.0


def extract_cache_hit(data: Any) -> bool:
    if not isinstance(data, Mapping):
        return False
    return any(bool(data.get(key)) for key in CACHE_FIELDS)


def detect_bottlenecks(execution_time_ms: int, cost_usd: float, cache_hit: bool) -> tuple[str, ...]:
    bottlenecks = []
    if execution_time_ms > SLOW_EXECUTION_MS:
        bottlenecks.append(Bottleneck.SLOW_EXECUTION)
    if cost_usd > HIGH_COST_USD:
        bottlenecks.append(Bottleneck.HIGH_COST)
    if not cache_hit and execution_time_ms > CACHE_MISS_MS:
        bottlenecks.append(Bottleneck.CACHE_MISS)
    return tuple(bottlenecks)


def _join_url(base_url: str, endpoint_path: str) -> str:
    if not endpoint_path:
        return base_url
    return base_url.rstrip("/") + "/" + endpoint_path.lstrip("/")


# ═══════════════════════════════════════════════════════════
#  WorkerInvoker
# ═══════════════════════════════════════════════════════════

class WorkerInvoker:
    """
    Calls worker services over HTTP with the orchestrator's credentials.

    One httpx.AsyncClient is shared by every call made through this
    invoker.  Pass `transport` (e.g. httpx.MockTransport) to route calls
    somewhere other than the network.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        # No client-wide timeout; every call carries its own budget.
        self._client = client or httpx.AsyncClient(transport=transport, timeout=None)

    async def __aenter__(self) -> WorkerInvoker:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ─── Resolution ───────────────────────────────────

    def resolve_base_url(self, binding_ref: str) -> str | None:
        """Map a binding ref to a base URL.  Refs that are URLs pass through."""
        url = self.config.worker_bindings.get(binding_ref)
        if url:
            return url
        if binding_ref.startswith(("http://", "https://")):
            return binding_ref
        return None

    def _headers(self) -> dict[str, str]:
        headers = {
            WORKER_ID_HEADER: self.config.worker_id,
            "Content-Type": "application/json",
        }
        if self.config.worker_shared_secret:
            headers["Authorization"] = f"Bearer {self.config.worker_shared_secret}"
        return headers

    # ─── Public API ───────────────────────────────────

    async def invoke_worker(
        self,
        worker: WorkerDescriptor,
        step: PipelineStep,
        payload: Mapping[str, Any],
    ) -> WorkerResult:
        """Invoke `worker` for `step`, taking endpoint, method and timeout from them."""
        return await self.invoke(
            binding=worker.binding_ref,
            worker_name=worker.name,
            endpoint_path=worker.primary_endpoint,
            payload=payload,
            method=worker.default_method,
            step_order=step.step_order,
            timeout_ms=step.timeout_override_ms or worker.timeout_ms,
            step_name=step.step_name,
        )

    async def invoke(
        self,
        binding: str,
        worker_name: str,
        endpoint_path: str,
        payload: Mapping[str, Any] | None,
        method: str = HttpMethod.GET,
        step_order: int = 0,
        timeout_ms: int | None = None,
        step_name: str = "",
    ) -> WorkerResult:
        """
        Make one call and return a WorkerResult.  Never raises.

        GET sends the payload as query parameters; any other method sends
        it as a JSON body.
        """
        timeout_ms = timeout_ms or self.config.default_worker_timeout_ms
        log = logger.bind(worker_name=worker_name, step_order=step_order)
        started = time.perf_counter()

        try:
            data = await self._call(
                binding, worker_name, endpoint_path, payload, method.upper(), timeout_ms, log,
            )
        except WorkerInvocationError as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            log.warning(
                "Worker call failed",
                error=exc.message,
                failure_kind=exc.kind,
                http_status=exc.http_status,
                duration_ms=elapsed_ms,
            )
            return self._failure(worker_name, step_order, step_name, exc.message, exc.kind, elapsed_ms)
        except Exception as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            log.exception("Unexpected error calling worker", error=str(exc))
            return self._failure(
                worker_name, step_order, step_name,
                f"Unexpected: {exc}", FailureKind.TRANSPORT_ERROR, elapsed_ms,
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        cost_usd = extract_cost(data)
        cache_hit = extract_cache_hit(data)

        log.info(
            "Worker call succeeded",
            duration_ms=elapsed_ms,
            cost_usd=cost_usd,
            cache_hit=cache_hit,
        )

        return WorkerResult(
            worker_name=worker_name,
            step_order=step_order,
            step_name=step_name,
            success=True,
            execution_time_ms=elapsed_ms,
            cost_usd=cost_usd,
            cache_hit=cache_hit,
            data=data,
            bottlenecks_detected=detect_bottlenecks(elapsed_ms, cost_usd, cache_hit),
        )

    async def check_health(
        self,
        worker: WorkerDescriptor,
        timeout_ms: int = HEALTH_CHECK_TIMEOUT_MS,
    ) -> dict[str, Any]:
        """
        GET the worker's /health endpoint.  Never raises.

        Returns a dict with `status` (a WorkerHealth value), `response_time_ms`
        and either `status_code` or `error`.
        """
        base_url = self.resolve_base_url(worker.binding_ref)
        if base_url is None:
            return {
                "status": WorkerHealth.NOT_CONFIGURED,
                "response_time_ms": 0,
                "error": f"no binding configured for '{worker.binding_ref}'",
            }

        started = time.perf_counter()
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                response = await self._client.get(
                    _join_url(base_url, HEALTH_ENDPOINT),
                    headers=self._headers(),
                    timeout=timeout_ms / 1000,
                )
        except (TimeoutError, httpx.HTTPError) as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.warning("Worker health check failed", worker_name=worker.name, error=str(exc))
            return {
                "status": WorkerHealth.UNREACHABLE,
                "response_time_ms": elapsed_ms,
                "error": str(exc) or type(exc).__name__,
            }

        return {
            "status": WorkerHealth.HEALTHY if response.is_success else WorkerHealth.UNHEALTHY,
            "response_time_ms": int((time.perf_counter() - started) * 1000),
            "status_code": response.status_code,
        }

    # ─── Internals ────────────────────────────────────

    async def _call(
        self,
        binding: str,
        worker_name: str,
        endpoint_path: str,
        payload: Mapping[str, Any] | None,
        method: str,
        timeout_ms: int,
        log,
    ) -> Any:
        """Send the request and return the parsed JSON body, or raise WorkerInvocationError."""
        base_url = self.resolve_base_url(binding)
        if base_url is None:
            raise WorkerInvocationError(
                f"no binding configured for '{binding}'",
                kind=FailureKind.WORKER_UNAVAILABLE,
            )

        url = _join_url(base_url, endpoint_path)
        request_kwargs: dict[str, Any] = {
            "headers": self._headers(),
            "timeout": timeout_ms / 1000,
        }
        if method == HttpMethod.GET:
            request_kwargs["params"] = build_query_params(payload)
        else:
            request_kwargs["json"] = dict(payload or {})

        log.info("Calling worker", method=method, url=url, timeout_ms=timeout_ms)

        try:
            async with asyncio.timeout(timeout_ms / 1000):
                response = await self._client.request(method, url, **request_kwargs)
        except (TimeoutError, httpx.TimeoutException):
            raise WorkerInvocationError(
                f"{worker_name} timed out after {timeout_ms} ms",
                kind=FailureKind.TIMEOUT,
            ) from None
        except httpx.HTTPError as exc:
            raise WorkerInvocationError(
                f"{worker_name} request failed: {str(exc) or type(exc).__name__}",
                kind=FailureKind.TRANSPORT_ERROR,
            ) from exc

        if not response.is_success:
            raise WorkerInvocationError(
                f"{worker_name} returned {response.status_code}: {response.reason_phrase}",
                kind=FailureKind.HTTP_ERROR,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise WorkerInvocationError(
                f"{worker_name} returned invalid JSON: {exc}",
                kind=FailureKind.INVALID_RESPONSE,
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _failure(
        worker_name: str,
        step_order: int,
        step_name: str,
        error: str,
        kind: str,
        elapsed_ms: int,
    ) -> WorkerResult:
        return WorkerResult(
            worker_name=worker_name,
            step_order=step_order,
            step_name=step_name,
            success=False,
            execution_time_ms=elapsed_ms,
            cost_usd=0.0,
            cache_hit=False,
            data=None,
            error=error,
            bottlenecks_detected=(kind,),
        )
