"""Copy-on-write staging over the live entity tables.

An ingestion call writes into a :class:`StagedTable`; nothing is visible to
readers until :meth:`StagedTable.commit` swaps the touched buckets in, so a
failed batch leaves the live tables exactly as they were.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

Record = dict[str, Any]
Bucket = dict[Any, Record]
Tables = dict[str, Bucket]


def _id_forms(record_id: Any) -> list[Any]:
    if isinstance(record_id, bool):
        return []
    if isinstance(record_id, (int, float)):
        return [str(record_id)]
    if isinstance(record_id, str):
        forms: list[Any] = []
        for convert in (int, float):
            try:
                value = convert(record_id)
            except ValueError:
                continue
            if str(value) == record_id:
                forms.append(value)
        return forms
    return []


def stored_key(bucket: Mapping[Any, Record], record_id: Any) -> Any:
    """Key under which *record_id* is stored in *bucket*.

    Ids compare by their string form, so ``5`` and ``"5"`` name the same
    record. Returns *record_id* itself when nothing is stored under it.
    """
    if record_id in bucket:
        return record_id
    for candidate in _id_forms(record_id):
        if candidate in bucket:
            return candidate
    return record_id


class StagedTable:
    def __init__(self, live: Tables) -> None:
        self._live = live
        self._buckets: dict[str, Bucket] = {}

    def bucket(self, type_name: str) -> Bucket:
        """Writable bucket for *type_name*, copied from the live table on first use."""
        staged = self._buckets.get(type_name)
        if staged is None:
            staged = dict(self._live.get(type_name, {}))
            self._buckets[type_name] = staged
        return staged

    def replace(self, type_name: str, bucket: Bucket) -> None:
        self._buckets[type_name] = bucket

    @property
    def touched(self) -> list[str]:
        """Type names written during this call, in first-write order."""
        return list(self._buckets)

    def commit(self) -> None:
        self._live.update(self._buckets)
