"""
Pytest configuration and fixtures for client tests.

The fake API answers from a per-route queue of scripted responses: each call
pops the head of the queue, and the last entry keeps answering once the queue
is down to one.
"""

import json
from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from cloudops_client.deploy.driver import DeploymentDriver
from cloudops_client.transport.client import ResourceClient

BASE_URL = "http://cloudops.test"

Scripted = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeApi:
    """Scripted orchestration API recording every request it receives."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Scripted]] = defaultdict(list)
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json_body: Any = None) -> "FakeApi":
        self.routes[(method.upper(), path)].append((status, json_body))
        return self

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> "FakeApi":
        self.routes[(method.upper(), path)].append(handler)
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(entry):
            return entry(request)
        status, payload = entry
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


def connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def client(api: FakeApi) -> ResourceClient:
    http_client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(api.handle))
    with ResourceClient(BASE_URL, client=http_client) as resource_client:
        yield resource_client
    http_client.close()


@pytest.fixture
def driver(client: ResourceClient) -> DeploymentDriver:
    return DeploymentDriver(client, "shop", organization="acme")


ENV_URI = "/assemblies/shop/transition/environments/prod"
OPS_URI = "/assemblies/shop/operations/environments/prod"
