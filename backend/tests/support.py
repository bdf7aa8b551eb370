"""Test doubles and builders shared across the suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx

from orchestrator.core.constants import HttpMethod
from orchestrator.pipeline.definitions import PipelineStep, PipelineTemplate, WorkerDescriptor

BINDINGS = {
    "ALPHA": "http://alpha.test",
    "BETA": "http://beta.test",
    "GAMMA": "http://gamma.test",
}

ALPHA = WorkerDescriptor(
    name="alpha",
    binding_ref="ALPHA",
    endpoints=("/search",),
    default_method=HttpMethod.GET,
)
BETA = WorkerDescriptor(
    name="beta",
    binding_ref="BETA",
    endpoints=("/process",),
    default_method=HttpMethod.POST,
)
GAMMA = WorkerDescriptor(name="gamma", binding_ref="GAMMA")

WORKERS = (ALPHA, BETA, GAMMA)


class FakeWorkers:
    """Answers requests by host with canned JSON and records every call."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[httpx.Request] = []

    def respond(self, host: str, status_code: int = 200, json_body: Any = None) -> None:
        self.routes[host] = lambda request: httpx.Response(status_code, json=json_body)

    def route(self, host: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[host] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(request.url.host)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(request)

    @property
    def called_hosts(self) -> list[str]:
        return [r.url.host for r in self.calls]

    def last_call_to(self, host: str) -> httpx.Request:
        return [r for r in self.calls if r.url.host == host][-1]

    def json_body(self, host: str) -> dict[str, Any]:
        return json.loads(self.last_call_to(host).content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def step(order: int, worker: str, **kwargs: Any) -> PipelineStep:
    return PipelineStep(step_order=order, worker_name=worker, **kwargs)


def template(name: str, *steps: PipelineStep, **kwargs: Any) -> PipelineTemplate:
    return PipelineTemplate(name=name, steps=steps, **kwargs)
