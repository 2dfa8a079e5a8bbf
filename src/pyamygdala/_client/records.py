"""Internal per-record operations (related lookups, update, save).

These take the owning client explicitly; :class:`pyamygdala.records.BoundRecord`
is a thin handle over them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pyamygdala._client import sync as _sync
from pyamygdala.exceptions import AmygdalaTransportError
from pyamygdala.ingestion.normalize import decode_payload, is_record, is_scalar_id, is_sequence
from pyamygdala.state.table import Record

if TYPE_CHECKING:
    from pyamygdala.client import Amygdala

_logger = logging.getLogger(__name__)


def _as_id(value: Any, id_attribute: str) -> Any:
    if is_record(value):
        return value.get(id_attribute)
    return value


def _is_location(value: Any) -> bool:
    return isinstance(value, str) and (value.startswith("/") or "://" in value)


async def fetch_by_id(client: Amygdala, type_name: str, related_id: Any) -> None:
    """Load one record of *type_name* into the store.

    Ids that are themselves locations (``"/api/v2/user/3/"`` style, used
    when the identifier attribute is ``url``) are fetched directly; other
    ids go through the id-in-path rule. An empty reply only means "not
    found" here; it never clears the type's table.
    """
    _logger.debug("Fetching missing %s id=%r", type_name, related_id)
    if _is_location(related_id):
        client.registry.require(type_name)
        url, query = _sync.absolute_url(client, related_id), {}
    else:
        url, query = _sync.build_uri(client, type_name, {client.registry.id_attribute(type_name): related_id})
    response = await client.transport.send("GET", url, data=query, headers=client.config.headers)
    payload = decode_payload(response.text)
    if is_sequence(payload) and not payload:
        return
    client.store.set(type_name, payload)


async def _ensure_local(client: Amygdala, type_name: str, ids: list[Any]) -> None:
    """Fetch the ids of *type_name* that are not stored yet.

    A 404 for an id means it has no match and is skipped; any other failure
    is raised once every fetch has settled.
    """
    missing = [i for i in dict.fromkeys(ids) if is_scalar_id(i) and client.store.find(type_name, i) is None]
    if not missing:
        return
    results = await asyncio.gather(*(fetch_by_id(client, type_name, i) for i in missing), return_exceptions=True)
    for related_id, result in zip(missing, results, strict=True):
        if isinstance(result, AmygdalaTransportError) and result.status_code == 404:
            _logger.debug("No %s record for id=%r", type_name, related_id)
            continue
        if isinstance(result, BaseException):
            raise result


async def get_related(
    client: Amygdala,
    type_name: str,
    record: Mapping[str, Any],
    attribute: str | None = None,
) -> Any:
    """Resolve relation attribute(s) of *record* to full related records.

    - oneToMany: list of related records, ids with no match dropped.
    - foreignKey: the related record (or ``None``).
    - no attribute: ``{attribute: result}`` for every declared relation,
      resolved concurrently.

    Ids not present locally are fetched through the transport first.
    Undeclared attributes resolve to ``None``.
    """
    schema = client.registry.require(type_name)

    if attribute is None:
        names = [*schema.one_to_many, *schema.foreign_key]
        results = await asyncio.gather(*(get_related(client, type_name, record, name) for name in names))
        return dict(zip(names, results, strict=True))

    if attribute in schema.one_to_many:
        related_type = schema.one_to_many[attribute]
        id_attribute = client.registry.id_attribute(related_type)
        value = record.get(attribute)
        if value is None:
            return []
        items = value if is_sequence(value) else [value]
        ids = [_as_id(item, id_attribute) for item in items]
        await _ensure_local(client, related_type, ids)
        found = (client.store.find(related_type, i) if is_scalar_id(i) else None for i in ids)
        return [item for item in found if item is not None]

    if attribute in schema.foreign_key:
        related_type = schema.foreign_key[attribute]
        related_id = _as_id(record.get(attribute), client.registry.id_attribute(related_type))
        if not is_scalar_id(related_id):
            return None
        await _ensure_local(client, related_type, [related_id])
        return client.store.find(related_type, related_id)

    return None


async def update_record(
    client: Amygdala,
    type_name: str,
    record: Mapping[str, Any],
    patch: Mapping[str, Any] | None = None,
) -> Record:
    """Merge *patch* onto *record*, persist it and return the server's version."""
    merged = {**record, **(patch or {})}
    result = await _sync.update(client, type_name, merged)
    if isinstance(result, list):
        return result[0] if result else merged
    return result


async def save_record(client: Amygdala, type_name: str, record: Mapping[str, Any]) -> Record:
    """Create *record* when it has no identity yet, otherwise update it."""
    id_attribute = client.registry.id_attribute(type_name)
    if record.get(id_attribute) is None and not record.get("url"):
        result = await _sync.add(client, type_name, record)
        if isinstance(result, list):
            return result[0] if result else dict(record)
        return result
    return await update_record(client, type_name, record)
