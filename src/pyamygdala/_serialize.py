"""Querystring serialization for GET parameters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

# Characters encodeURIComponent leaves alone; servers built against the
# browser client expect the same encoding.
_SAFE = "-_.!~*'()"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


def serialize(params: Mapping[str, Any] | None) -> str:
    """Translate *params* into a querystring.

    Keys and values are percent-encoded and joined with ``&``; ``None`` and
    empty-string values are omitted.
    """
    if not params:
        return ""
    pairs: list[str] = []
    for key, value in params.items():
        if value is None or value == "":
            continue
        pairs.append(f"{quote(str(key), safe=_SAFE)}={quote(_stringify(value), safe=_SAFE)}")
    return "&".join(pairs)
