"""Schema registry.

Immutable mapping of type name to :class:`~pyamygdala.models.TypeSchema`,
validated once at construction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from pyamygdala._constants import DEFAULT_ID_ATTRIBUTE, RESERVED_SCHEMA_KEYS
from pyamygdala.exceptions import AmygdalaConfigError, UnknownTypeError
from pyamygdala.models.schema import TypeSchema

_logger = logging.getLogger(__name__)


class SchemaRegistry(Mapping[str, TypeSchema]):
    """Read-only registry of entity types."""

    def __init__(
        self,
        types: Mapping[str, TypeSchema | Mapping[str, Any]],
        *,
        default_id_attribute: str = DEFAULT_ID_ATTRIBUTE,
    ) -> None:
        if not default_id_attribute:
            raise AmygdalaConfigError("default_id_attribute must be non-empty")
        entries: dict[str, TypeSchema] = {}
        for name, entry in types.items():
            if not isinstance(name, str) or not name:
                raise AmygdalaConfigError(f"type names must be non-empty strings, got {name!r}")
            if isinstance(entry, TypeSchema):
                entries[name] = entry
                continue
            if not isinstance(entry, Mapping):
                raise AmygdalaConfigError(f"schema entry for {name!r} must be a mapping")
            try:
                entries[name] = TypeSchema.model_validate(dict(entry))
            except ValidationError as exc:
                raise AmygdalaConfigError(f"invalid schema entry for {name!r}: {exc}") from exc

        for name, entry in entries.items():
            missing = sorted(entry.relation_targets() - entries.keys())
            if missing:
                raise AmygdalaConfigError(f"{name!r} declares relations to unknown types: {', '.join(missing)}")

        self._types = MappingProxyType(entries)
        self._default_id_attribute = default_id_attribute
        _logger.debug("Schema registry built with types=%s", list(entries))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> tuple[SchemaRegistry, str | None]:
        """Build a registry from the flat schema configuration shape.

        The mapping mixes store-level keys (``apiUrl``/``apiBaseUrl``,
        ``idAttribute``/``defaultIdAttribute``) with one entry per type::

            {
                "apiUrl": "http://localhost:8000",
                "idAttribute": "url",
                "teams": {"url": "/api/v2/team/", "oneToMany": {"members": "members"}},
                "members": {"foreignKey": {"user": "users"}},
                "users": {"url": "/api/v2/user/"},
            }

        Returns
        -------
        tuple[SchemaRegistry, str | None]
            The registry and the API base URL (``None`` when absent).
        """
        api_base_url = mapping.get("apiBaseUrl") or mapping.get("apiUrl")
        id_attribute = mapping.get("defaultIdAttribute") or mapping.get("idAttribute") or DEFAULT_ID_ATTRIBUTE
        types = {key: value for key, value in mapping.items() if key not in RESERVED_SCHEMA_KEYS}
        return cls(types, default_id_attribute=id_attribute), api_base_url

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, type_name: str) -> TypeSchema:
        return self._types[type_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def default_id_attribute(self) -> str:
        return self._default_id_attribute

    def require(self, type_name: str) -> TypeSchema:
        """Return the entry for *type_name* or raise :class:`UnknownTypeError`."""
        try:
            return self._types[type_name]
        except (KeyError, TypeError):
            raise UnknownTypeError(type_name, self._types) from None

    def require_endpoint(self, type_name: str) -> str:
        """Return the endpoint path, treating types without one as unknown."""
        entry = self._types.get(type_name) if isinstance(type_name, str) else None
        if entry is None or not entry.url:
            raise UnknownTypeError(type_name, [name for name, e in self._types.items() if e.url])
        return entry.url

    def id_attribute(self, type_name: str) -> str:
        """Identifier attribute for *type_name* (entry override or store default)."""
        return self.require(type_name).id_attribute or self._default_id_attribute
