"""Internal sync operations for :class:`pyamygdala.client.Amygdala`.

Each flow issues one outbound call through the transport and only touches
the store once that call succeeded, so a failed request never leaves a
partial write behind.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pyamygdala._constants import JSON_CONTENT_TYPE
from pyamygdala.exceptions import MissingIdentityError
from pyamygdala.ingestion.normalize import is_record
from pyamygdala.state.relations import reduce_related
from pyamygdala.state.table import Record

if TYPE_CHECKING:
    from pyamygdala.client import Amygdala

_logger = logging.getLogger(__name__)


def absolute_url(client: Amygdala, url: str) -> str:
    """Prefix root-relative locations with the API base URL."""
    if url.startswith("/"):
        return f"{client.config.api_base_url}{url}"
    return url


def build_uri(
    client: Amygdala,
    type_name: str,
    params: Mapping[str, Any] | None = None,
) -> tuple[str, dict[str, Any]]:
    """Endpoint URL for *type_name* with the id-in-path rule applied.

    When the type's identifier attribute is present in *params*, its value
    is appended to the endpoint path and dropped from the returned params,
    so it never travels twice.
    """
    endpoint = client.registry.require_endpoint(type_name)
    url = f"{client.config.api_base_url}{endpoint}"
    remaining = dict(params or {})
    id_attribute = client.registry.id_attribute(type_name)
    if id_attribute in remaining:
        url = f"{url}{remaining.pop(id_attribute)}"
    return url, remaining


def target_location(client: Amygdala, type_name: str, obj: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """Location of an existing object: its explicit ``url``, else id-in-path."""
    if not is_record(obj):
        raise MissingIdentityError(type_name, client.registry.id_attribute(type_name))
    explicit = obj.get("url")
    if isinstance(explicit, str) and explicit:
        # Validate the type even when the object carries its own location.
        client.registry.require(type_name)
        return absolute_url(client, explicit), dict(obj)
    id_attribute = client.registry.id_attribute(type_name)
    if obj.get(id_attribute) is None:
        raise MissingIdentityError(type_name, id_attribute)
    return build_uri(client, type_name, obj)


async def get(
    client: Amygdala,
    type_name: str,
    params: Mapping[str, Any] | None = None,
    *,
    url: str | None = None,
    silent: bool = False,
) -> Record | list[Record]:
    default_url, query = build_uri(client, type_name, params)
    target = absolute_url(client, url) if url else default_url
    _logger.debug("store:get %s %s", type_name, target)
    response = await client.transport.send("GET", target, data=query, headers=client.config.headers)
    return client.store.set(type_name, response.text, silent=silent)


async def add(
    client: Amygdala,
    type_name: str,
    obj: Mapping[str, Any],
    *,
    url: str | None = None,
    silent: bool = False,
) -> Record | list[Record]:
    default_url, _ = build_uri(client, type_name)
    target = absolute_url(client, url) if url else default_url
    body = reduce_related(client.registry, type_name, obj)
    _logger.debug("store:add %s %s", type_name, target)
    response = await client.transport.send(
        "POST",
        target,
        data=json.dumps(body),
        content_type=JSON_CONTENT_TYPE,
        headers=client.config.headers,
    )
    return client.store.set(type_name, response.text, silent=silent)


async def update(
    client: Amygdala,
    type_name: str,
    obj: Mapping[str, Any],
    *,
    silent: bool = False,
) -> Record | list[Record]:
    target, body = target_location(client, type_name, obj)
    body = reduce_related(client.registry, type_name, body)
    _logger.debug("store:update %s %s", type_name, target)
    response = await client.transport.send(
        "PUT",
        target,
        data=json.dumps(body),
        content_type=JSON_CONTENT_TYPE,
        headers=client.config.headers,
    )
    if not response.text.strip():
        # 204-style reply: the object we sent is the new state.
        return client.store.set(type_name, reduce_related(client.registry, type_name, obj), silent=silent)
    return client.store.set(type_name, response.text, silent=silent)


async def remove(
    client: Amygdala,
    type_name: str,
    obj: Mapping[str, Any],
    *,
    silent: bool = False,
) -> Record | None:
    target, body = target_location(client, type_name, obj)
    _logger.debug("store:remove %s %s", type_name, target)
    await client.transport.send(
        "DELETE",
        target,
        data=json.dumps(reduce_related(client.registry, type_name, body)),
        content_type=JSON_CONTENT_TYPE,
        headers=client.config.headers,
    )
    return client.store.remove(type_name, obj, silent=silent)
