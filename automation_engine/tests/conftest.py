"""
Pytest configuration and shared fixtures for automation_engine tests.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from automation_engine.config import Settings, reset_settings
from automation_engine.models import Edge, Node, WorkflowGraph
from automation_engine.services.http_client import HTTPClient


@pytest.fixture(autouse=True)
def engine_env(monkeypatch):
    """Isolate every test from the developer's environment."""
    for key in (
        "AUTOMATION_OPENAI_API_KEY",
        "AUTOMATION_RESEND_API_KEY",
        "AUTOMATION_RESEND_FROM_EMAIL",
        "AUTOMATION_GOOGLE_SERVICE_ACCOUNT_JSON",
        "AUTOMATION_PRESERVE_PLACEHOLDER_TYPES",
        "AUTOMATION_RATE_LIMIT",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AUTOMATION_MAX_RUN_SECONDS", "300")
    monkeypatch.setenv("LOG_FORMAT", "standard")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def make_graph() -> Callable[..., WorkflowGraph]:
    """Build a WorkflowGraph from compact tuples.

    Nodes are ``(id, type, data)`` or ``(id, type, data, operation)``; edges
    are ``(source, target)`` or ``(source, target, source_handle)``.
    """

    def _build(nodes: List[tuple], edges: List[tuple]) -> WorkflowGraph:
        built_nodes = []
        for entry in nodes:
            node_id, node_type, data = entry[0], entry[1], entry[2] if len(entry) > 2 else {}
            operation = entry[3] if len(entry) > 3 else None
            built_nodes.append(Node(id=node_id, type=node_type, data=data or {}, operation=operation))
        built_edges = []
        for i, entry in enumerate(edges):
            handle = entry[2] if len(entry) > 2 else None
            built_edges.append(
                Edge(id=f"e{i}", source=entry[0], target=entry[1], source_handle=handle)
            )
        return WorkflowGraph(nodes=built_nodes, edges=built_edges)

    return _build


class RecordingTransport:
    """Collects requests and answers them from a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content.decode())


@pytest.fixture
def mock_http():
    """Factory returning ``(HTTPClient, RecordingTransport)`` for a handler."""
    clients: List[HTTPClient] = []

    def _factory(
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        *,
        status_code: int = 200,
        json_body: Optional[Dict[str, Any]] = None,
    ):
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status_code, json=json_body if json_body is not None else {})

        recorder = RecordingTransport(handler)
        client = HTTPClient(timeout=5.0, transport=httpx.MockTransport(recorder))
        clients.append(client)
        return client, recorder

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def api_client():
    """TestClient with fresh in-memory dependencies."""
    from fastapi.testclient import TestClient

    from automation_engine.api.dependencies import reset_dependencies
    from automation_engine.main import app

    reset_dependencies()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    reset_dependencies()
