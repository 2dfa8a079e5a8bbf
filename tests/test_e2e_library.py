from __future__ import annotations

import json
from typing import Any

import pytest

from pyamygdala.client import Amygdala
from pyamygdala.config import StoreConfig
from pyamygdala.exceptions import AmygdalaError, AmygdalaTransportError, MissingIdentityError, UnknownTypeError


@pytest.fixture
def client(config: StoreConfig, schema: dict[str, Any], backend: Any) -> Amygdala:
    return Amygdala(config, schema, transport=backend)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_get_ingests_response_and_sends_params_as_query(client: Amygdala, backend: Any) -> None:
    backend.route("GET", "/api/v2/user/", [{"id": 1, "name": "ana"}, {"id": 2, "name": "bo"}])

    users = await client.get("users", {"team": "t1"})

    assert [u["id"] for u in users] == [1, 2]
    assert client.find("users", 2) == {"id": 2, "name": "bo"}
    method, _url, data = backend.calls[0]
    assert method == "GET"
    assert data == {"team": "t1"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_get_moves_id_into_path_and_out_of_query(client: Amygdala, backend: Any) -> None:
    backend.route("GET", "/api/v2/user/7", {"id": 7, "name": "ana"})

    user = await client.get("users", {"id": 7, "expand": "1"})

    assert user == {"id": 7, "name": "ana"}
    _method, _url, data = backend.calls[0]
    assert data == {"expand": "1"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_get_with_url_override(client: Amygdala, backend: Any) -> None:
    backend.route("GET", "/api/v2/team/mine/", [{"id": "t1"}])

    await client.get("teams", url="/api/v2/team/mine/")

    assert client.find("teams", "t1") == {"id": "t1"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_get_normalizes_paginated_relations(client: Amygdala, backend: Any) -> None:
    backend.route(
        "GET",
        "/api/v2/discussion/",
        {
            "count": 1,
            "results": [
                {
                    "id": "d1",
                    "title": "unicode",
                    "message": {"id": "m1", "text": "hi", "user": {"id": "u1"}},
                    "team": "t1",
                }
            ],
        },
    )

    await client.get("discussions")

    assert client.find("discussions", "d1")["message"] == "m1"
    assert client.find("messages", "m1") == {"id": "m1", "text": "hi", "user": "u1"}
    assert client.find("users", "u1") == {"id": "u1"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_transport_failure_leaves_store_unmodified(client: Amygdala, backend: Any) -> None:
    client.set("users", [{"id": 1}], silent=True)
    backend.route("GET", "/api/v2/user/", {"detail": "boom"}, status=500)

    with pytest.raises(AmygdalaTransportError) as exc_info:
        await client.get("users")

    assert exc_info.value.status_code == 500
    assert exc_info.value.url.endswith("/api/v2/user/")
    assert client.find_all("users") == [{"id": 1}]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_add_posts_reduced_relations(client: Amygdala, backend: Any) -> None:
    backend.route("POST", "/api/v2/message/", {"id": "m9", "text": "hello", "user": "u1", "attachments": []})

    created = await client.add("messages", {"text": "hello", "user": {"id": "u1", "name": "ana"}, "attachments": []})

    assert created["id"] == "m9"
    _method, _url, body = backend.calls[0]
    assert json.loads(body) == {"text": "hello", "user": "u1", "attachments": []}
    assert client.find("messages", "m9")["text"] == "hello"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_uses_id_in_path_only_once(client: Amygdala, backend: Any) -> None:
    backend.route("PUT", "/api/v2/user/1", {"id": 1, "name": "renamed"})

    await client.update("users", {"id": 1, "name": "renamed"})

    _method, _url, body = backend.calls[0]
    assert json.loads(body) == {"name": "renamed"}
    assert client.find("users", 1) == {"id": 1, "name": "renamed"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_with_explicit_url(client: Amygdala, backend: Any) -> None:
    backend.route("PUT", "/api/v2/user/ana/", {"id": 1, "url": "/api/v2/user/ana/", "name": "x"})

    await client.update("users", {"url": "/api/v2/user/ana/", "name": "x"})

    assert backend.count("PUT", "/api/v2/user/ana/") == 1
    assert client.find("users", 1)["name"] == "x"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_without_identity_raises_before_sending(client: Amygdala, backend: Any) -> None:
    with pytest.raises(MissingIdentityError):
        await client.update("users", {"name": "nobody"})

    assert backend.calls == []


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_with_empty_reply_keeps_sent_object(client: Amygdala, backend: Any) -> None:
    backend.route("PUT", "/api/v2/user/1", "", status=204)

    await client.update("users", {"id": 1, "name": "ana"})

    assert client.find("users", 1) == {"id": 1, "name": "ana"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_remove_deletes_locally_after_success(client: Amygdala, backend: Any) -> None:
    client.set("users", [{"id": 1}, {"id": 2}], silent=True)
    backend.route("DELETE", "/api/v2/user/1", "", status=204)

    removed = await client.remove("users", {"id": 1})

    assert removed == {"id": 1}
    assert [u["id"] for u in client.find_all("users")] == [2]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_remove_failure_keeps_record(client: Amygdala, backend: Any) -> None:
    client.set("users", [{"id": 1}], silent=True)
    backend.route("DELETE", "/api/v2/user/1", "", status=403)

    with pytest.raises(AmygdalaTransportError):
        await client.remove("users", {"id": 1})

    assert client.find("users", 1) == {"id": 1}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_sync_on_type_without_endpoint_is_unknown(client: Amygdala) -> None:
    with pytest.raises(UnknownTypeError):
        await client.get("members")


@pytest.mark.asyncio
async def test_transport_required_before_use(config: StoreConfig, schema: dict[str, Any]) -> None:
    client = Amygdala(config, schema)

    with pytest.raises(AmygdalaError, match="not initialized"):
        await client.get("users")


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_configured_headers_are_passed_to_transport(schema: dict[str, Any], backend: Any) -> None:
    config = StoreConfig(api_base_url="http://localhost:8000", headers={"X-CSRFToken": lambda: "tok"})
    client = Amygdala(config, schema, transport=backend)
    backend.route("GET", "/api/v2/user/", [])

    await client.get("users")

    assert "X-CSRFToken" in backend.headers_seen[0]
