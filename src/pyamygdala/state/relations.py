"""Relation resolver.

Flattens embedded related objects into id references while feeding the
related objects into their own tables, and reduces relation attributes back
to bare ids before outbound writes.

Termination on cyclic schemas (``A oneToMany B`` + ``B foreignKey A``) does
not rely on a visited set. A record is upserted by id before its relations
are visited, and each relation attribute is rewritten to ids *before*
recursing into the related objects. When the recursion reaches the same
object again it only finds id references left, so the nested call is an
idempotent re-upsert and the walk stops.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pyamygdala.ingestion.normalize import is_record, is_sequence, record_id, require_record
from pyamygdala.schema import SchemaRegistry
from pyamygdala.state.table import Record, StagedTable, stored_key


def normalize_records(
    table: StagedTable,
    registry: SchemaRegistry,
    type_name: str,
    elements: list[Any],
) -> list[Record]:
    """Upsert *elements* into ``type_name`` and resolve their relations.

    Every element fully replaces the stored record with the same id. Nested
    related objects are written to their own tables through recursive calls
    on the same staged table.
    """
    id_attribute = registry.id_attribute(type_name)
    records: list[Record] = []
    for element in elements:
        record = require_record(element, type_name)
        key = stored_key(table.bucket(type_name), record_id(record, id_attribute, type_name))
        table.bucket(type_name)[key] = record
        resolve_relations(table, registry, type_name, record)
        # A nested copy of this record may have been upserted while its
        # relations were resolved; the outermost occurrence wins.
        table.bucket(type_name)[key] = record
        records.append(record)
    return records


def resolve_relations(
    table: StagedTable,
    registry: SchemaRegistry,
    type_name: str,
    record: Record,
) -> Record:
    """Rewrite *record*'s declared relations to ids, in place."""
    schema = registry.require(type_name)

    for attr, related_type in schema.one_to_many.items():
        value = record.get(attr)
        if not is_sequence(value) or not any(is_record(item) for item in value):
            continue
        related_id_attr = registry.id_attribute(related_type)
        nested: list[Any] = []
        ids: list[Any] = []
        for item in value:
            if is_record(item):
                ids.append(record_id(item, related_id_attr, related_type))
                nested.append(item)
            else:
                ids.append(item)
        record[attr] = ids
        normalize_records(table, registry, related_type, nested)

    for attr, related_type in schema.foreign_key.items():
        value = record.get(attr)
        if not is_record(value):
            continue
        record[attr] = record_id(value, registry.id_attribute(related_type), related_type)
        normalize_records(table, registry, related_type, [value])

    return record


def _id_of(value: Any, id_attribute: str) -> Any:
    if is_record(value):
        return value.get(id_attribute)
    return value


def reduce_related(registry: SchemaRegistry, type_name: str, record: Mapping[str, Any]) -> Record:
    """Return a copy of *record* with relation attributes reduced to bare ids."""
    schema = registry.require(type_name)
    reduced: Record = copy.deepcopy(dict(record))

    for attr, related_type in schema.one_to_many.items():
        value = reduced.get(attr)
        if is_sequence(value):
            related_id_attr = registry.id_attribute(related_type)
            reduced[attr] = [_id_of(item, related_id_attr) for item in value]

    for attr, related_type in schema.foreign_key.items():
        value = reduced.get(attr)
        related_id_attr = registry.id_attribute(related_type)
        if is_record(value):
            reduced[attr] = value.get(related_id_attr)
        elif is_sequence(value) and value:
            reduced[attr] = _id_of(value[0], related_id_attr)

    return reduced
