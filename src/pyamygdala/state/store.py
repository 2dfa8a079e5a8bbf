"""In-memory entity store.

This is the only component allowed to write the per-type tables. Every
ingestion is staged and committed as a whole, then reported to the change
notifier once per touched type.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from pyamygdala.ingestion.normalize import coerce_records, decode_payload, is_record, is_scalar_id
from pyamygdala.schema import SchemaRegistry
from pyamygdala.state import query as _query
from pyamygdala.state.relations import normalize_records
from pyamygdala.state.table import Record, StagedTable, Tables, stored_key

_logger = logging.getLogger(__name__)


class EntityStore:
    """Per-type ``id -> record`` tables built from raw API responses.

    Readers always get deep copies, so the tables can only change through
    :meth:`set` and :meth:`remove`.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        *,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        self._registry = registry
        self._on_change = on_change
        self._tables: Tables = {}

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def _notify(self, type_names: list[str], silent: bool) -> None:
        if silent or self._on_change is None:
            return
        for type_name in type_names:
            self._on_change(type_name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, type_name: str, response: Any, *, silent: bool = False) -> Record | list[Record]:
        """Ingest a raw response into ``type_name`` (and related types).

        Parameters
        ----------
        response
            JSON text, a single record, a list of records, or any payload the
            type's ``parse`` hook understands.
        silent
            Suppress change notifications for this call.

        Returns
        -------
        dict or list[dict]
            The normalized records. A bare record ingested into a type
            without a ``parse`` hook is returned bare.
        """
        schema = self._registry.require(type_name)
        payload = decode_payload(response)
        elements, wrapped = coerce_records(schema, payload)

        staged = StagedTable(self._tables)
        records: list[Record] = []
        if not elements:
            # An empty list is an explicit "clear" for a populated type.
            if self._tables.get(type_name):
                staged.replace(type_name, {})
        else:
            records = normalize_records(staged, self._registry, type_name, elements)
        staged.commit()

        _logger.debug(
            "Ingested %d %s record(s); touched types=%s silent=%s",
            len(records),
            type_name,
            staged.touched,
            silent,
        )
        self._notify(staged.touched, silent)

        result = copy.deepcopy(records)
        if wrapped and len(result) == 1:
            return result[0]
        return result

    def remove(self, type_name: str, obj: Any, *, silent: bool = False) -> Record | None:
        """Delete a record by id. Referrers are not updated and nothing cascades.

        *obj* is either the id itself or a record carrying the identifier.
        Returns the removed record, or ``None`` when it was not stored.
        """
        id_attribute = self._registry.id_attribute(type_name)
        key = obj.get(id_attribute) if is_record(obj) else obj
        bucket = self._tables.get(type_name)
        removed = None
        if bucket is not None and is_scalar_id(key):
            removed = bucket.pop(stored_key(bucket, key), None)
        _logger.debug("Removed %s id=%r found=%s", type_name, key, removed is not None)
        self._notify([type_name], silent)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def table(self, type_name: str) -> Mapping[Any, Record]:
        """Read-only live view of a type's bucket (records are not copied)."""
        self._registry.require(type_name)
        return MappingProxyType(self._tables.get(type_name, {}))

    def find(self, type_name: str, query: Any = None) -> Record | None:
        self._registry.require(type_name)
        found = _query.find(self._tables.get(type_name, {}), query)
        return copy.deepcopy(found)

    def find_all(self, type_name: str, query: Any = None) -> list[Record]:
        schema = self._registry.require(type_name)
        results = _query.find_all(self._tables.get(type_name, {}), query, ordering=schema.ordering)
        return copy.deepcopy(results)
