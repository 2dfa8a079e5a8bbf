"""Schema entry model.

Every registered type is described by a :class:`TypeSchema`. The model
uses ``alias_generator=to_camel`` so the camelCase keys of the original
schema configuration (``idAttribute``, ``oneToMany``, ...) map to
snake_case fields, and it is frozen: an entry is validated once when the
registry is built and never re-checked per call.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_ORDER_BY_RE = re.compile(r"^-?[\w-]+$")
_REVERSE_ORDER_RE = re.compile(r"^-([\w-]*)$")


class OrderBy(BaseModel):
    """Parsed ``orderBy`` declaration."""

    model_config = ConfigDict(frozen=True)

    attribute: str
    descending: bool = False

    @classmethod
    def parse(cls, value: str) -> OrderBy:
        """Parse ``"title"`` / ``"-title"`` into an attribute and a reverse flag."""
        match = _REVERSE_ORDER_RE.match(value)
        if match is not None:
            return cls(attribute=match.group(1), descending=True)
        return cls(attribute=value)


class TypeSchema(BaseModel):
    """Schema entry for a single entity type."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    url: str | None = None
    """Endpoint path appended to the API base URL (e.g. ``"/api/v2/team/"``)."""
    id_attribute: str | None = None
    """Per-type identifier attribute; ``None`` falls back to the store default."""
    one_to_many: dict[str, str] = Field(default_factory=dict)
    """``localAttribute -> relatedType`` for list-valued relations."""
    foreign_key: dict[str, str] = Field(default_factory=dict)
    """``localAttribute -> relatedType`` for single-valued relations."""
    order_by: str | None = None
    """Attribute to sort ``find_all`` results by; ``-`` prefix reverses."""
    parse: Callable[[Any], Any] | None = None
    """Unwraps enveloped payloads (pagination etc.) into a list of records."""

    @field_validator("order_by")
    @classmethod
    def _check_order_by(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not _ORDER_BY_RE.match(value) or not value.strip("-"):
            raise ValueError(f"orderBy must name an attribute, got {value!r}")
        return value

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("url must be non-empty when given")
        return value

    @property
    def ordering(self) -> OrderBy | None:
        if self.order_by is None:
            return None
        return OrderBy.parse(self.order_by)

    def relation_targets(self) -> set[str]:
        return set(self.one_to_many.values()) | set(self.foreign_key.values())
