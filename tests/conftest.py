from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyamygdala._transport import RawResponse
from pyamygdala.config import StoreConfig
from pyamygdala.exceptions import AmygdalaTransportError
from pyamygdala.schema import SchemaRegistry
from pyamygdala.state.store import EntityStore

BASE_URL = "http://localhost:8000"


def _results(data: dict[str, Any]) -> list[dict[str, Any]]:
    return data["results"]


def make_schema() -> dict[str, Any]:
    return {
        "teams": {"url": "/api/v2/team/", "oneToMany": {"members": "members"}},
        "users": {"url": "/api/v2/user/"},
        "members": {"foreignKey": {"user": "users"}},
        "attachments": {
            "url": "/api/v2/attachment/",
            "foreignKey": {"user": "users", "message": "messages"},
        },
        "discussions": {
            "url": "/api/v2/discussion/",
            "foreignKey": {"message": "messages", "team": "teams"},
            "orderBy": "-title",
            "parse": _results,
        },
        "messages": {
            "url": "/api/v2/message/",
            "oneToMany": {"attachments": "attachments"},
            "foreignKey": {"user": "users", "discussion": "discussions"},
        },
    }


@dataclass
class FakeBackend:
    """In-memory transport keyed by ``(method, url)``."""

    routes: dict[tuple[str, str], tuple[int, Any]] = field(default_factory=dict)
    calls: list[tuple[str, str, Any]] = field(default_factory=list)
    headers_seen: list[dict[str, Any]] = field(default_factory=list)

    def route(self, method: str, url: str, body: Any, status: int = 200) -> None:
        self.routes[(method, f"{BASE_URL}{url}")] = (status, body)

    def count(self, method: str, url: str) -> int:
        return sum(1 for m, u, _ in self.calls if m == method and u == f"{BASE_URL}{url}")

    async def send(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        content_type: str | None = None,
        headers: Any = None,
    ) -> RawResponse:
        self.calls.append((method, url, data))
        self.headers_seen.append(dict(headers or {}))
        if (method, url) not in self.routes:
            raise AssertionError(f"Unexpected request in fake backend: {method} {url}")
        status, body = self.routes[(method, url)]
        text = body if isinstance(body, str) else json.dumps(body)
        if not 200 <= status < 300:
            raise AmygdalaTransportError(f"HTTP {status}", status_code=status, url=url, method=method, body=text)
        return RawResponse(status=status, url=url, text=text)


@pytest.fixture
def schema() -> dict[str, Any]:
    return make_schema()


@pytest.fixture
def registry(schema: dict[str, Any]) -> SchemaRegistry:
    return SchemaRegistry(schema)


@pytest.fixture
def store(registry: SchemaRegistry) -> EntityStore:
    return EntityStore(registry)


@pytest.fixture
def config() -> StoreConfig:
    return StoreConfig(api_base_url=BASE_URL)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
