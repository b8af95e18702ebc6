"""Pytest configuration helpers.

This conftest ensures ``backend/`` is on ``sys.path`` so tests can import the
``mediabridge`` package regardless of how pytest is invoked, and provides an
in-memory stand-in for the Kie.ai REST API served through
``httpx.MockTransport``.
"""
from __future__ import annotations

import json
import sys
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

BACKEND = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from mediabridge.config import Settings
from mediabridge.database import build_engine, build_session_factory, close_db, init_db
from mediabridge.services.dispatcher import ToolDispatcher
from mediabridge.services.endpoint_registry import build_endpoint_registry
from mediabridge.services.gateway import KieGateway
from mediabridge.services.task_resolver import TaskResolver
from mediabridge.services.task_store import TaskStore
from mediabridge.services.tool_catalog import build_tool_catalog

TEST_API_KEY = "kie-test-key-0123456789abcdef"
BASE_URL = "https://kie.test/api/v1"

Route = Callable[[httpx.Request], httpx.Response]


def envelope(data: Any = None, *, code: int = 200, msg: str = "success") -> dict[str, Any]:
    return {"code": code, "msg": msg, "data": data}


def json_route(body: Any, status_code: int = 200) -> Route:
    def route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)
    return route


def text_route(text: str, status_code: int = 200) -> Route:
    def route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=text)
    return route


def timeout_route() -> Route:
    def route(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)
    return route


class FakeKie:
    """Records every request and answers from a path -> route table."""

    prefix = httpx.URL(BASE_URL).path

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def on(self, path: str, route: Route) -> FakeKie:
        self.routes[path] = route
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(self._path(request))
        if route is None:
            return httpx.Response(404, json={"code": 404, "msg": "Not Found"})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def paths(self) -> list[str]:
        return [self._path(request) for request in self.requests]

    def count(self, path: str) -> int:
        return self.paths.count(path)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)

    def _path(self, request: httpx.Request) -> str:
        path = request.url.path
        return path[len(self.prefix):] if path.startswith(self.prefix) else path


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def kie() -> FakeKie:
    return FakeKie()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        KIE_AI_API_KEY=TEST_API_KEY,
        KIE_AI_BASE_URL=BASE_URL,
        KIE_AI_TIMEOUT=5.0,
        KIE_AI_DB_PATH=str(tmp_path / "tasks.db"),
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)
    try:
        yield engine
    finally:
        await close_db(engine)


@pytest.fixture
def store(engine) -> TaskStore:
    return TaskStore(build_session_factory(engine))


@pytest.fixture
async def gateway(kie) -> AsyncGenerator[KieGateway, None]:
    gateway = KieGateway(api_key=TEST_API_KEY, base_url=BASE_URL, timeout=5.0, transport=kie.transport)
    try:
        yield gateway
    finally:
        await gateway.aclose()


@pytest.fixture
def resolver(store, gateway) -> TaskResolver:
    return TaskResolver(store, build_endpoint_registry(), gateway)


@pytest.fixture
def dispatcher(store, gateway, resolver) -> ToolDispatcher:
    return ToolDispatcher(build_tool_catalog(store, gateway, resolver))


@pytest.fixture
def client(settings, kie) -> Generator:
    from fastapi.testclient import TestClient

    from mediabridge.main import create_app

    with TestClient(create_app(settings, transport=kie.transport)) as test_client:
        yield test_client
