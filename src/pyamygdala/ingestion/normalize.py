"""Payload normalization helpers.

Centralizes the defensive handling of raw responses: JSON decoding,
schema ``parse`` hooks, wrapping single records and identifier checks.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from typing import Any

from pyamygdala.exceptions import InvalidPayloadError
from pyamygdala.models.schema import TypeSchema

Record = dict[str, Any]


def is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_scalar_id(value: Any) -> bool:
    """Whether *value* can be used as an identifier / id lookup key."""
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def decode_payload(response: Any) -> Any:
    """Decode textual responses as JSON; copy structured ones.

    Structured payloads are deep-copied so normalization never rewrites the
    caller's objects. ``copy.deepcopy`` keeps shared and cyclic references
    intact, which the relation resolver depends on.
    """
    if isinstance(response, (bytes, bytearray)):
        response = response.decode("utf-8")
    if isinstance(response, str):
        try:
            return json.loads(response)
        except json.JSONDecodeError as exc:
            raise InvalidPayloadError(
                f"Invalid JSON from the API response: {response[:200]}",
                payload=response,
            ) from exc
    return copy.deepcopy(response)


def coerce_records(schema: TypeSchema, payload: Any) -> tuple[list[Any], bool]:
    """Turn a decoded payload into a list of candidate records.

    Returns
    -------
    tuple[list, bool]
        The elements and whether a bare (non-sequence) payload was wrapped
        without a ``parse`` hook, in which case callers unwrap a singleton
        result back into the bare record.
    """
    if is_sequence(payload):
        return list(payload), False
    if schema.parse is not None:
        parsed = schema.parse(payload)
        if is_sequence(parsed):
            return list(parsed), False
        return [parsed], False
    return [payload], True


def require_record(value: Any, type_name: str) -> Record:
    if not is_record(value):
        raise InvalidPayloadError(
            f"{type_name} payload element is not an object: {value!r:.200}",
            payload=value,
        )
    if not isinstance(value, dict):
        # Other mappings are copied so the stored record is a plain dict.
        return dict(value)
    return value


def record_id(record: Mapping[str, Any], id_attribute: str, type_name: str) -> Any:
    """Resolve the identifier of an incoming record."""
    value = record.get(id_attribute)
    if not is_scalar_id(value):
        raise InvalidPayloadError(
            f"{type_name} record has no usable {id_attribute!r} attribute: {dict(record)!r:.200}",
            payload=record,
        )
    return value
