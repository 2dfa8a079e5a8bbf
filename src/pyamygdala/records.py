"""Bound record handle.

Stored records are plain dicts. A :class:`BoundRecord` pairs one of them
with the client that owns it so the related-lookup, update and save
operations have an explicit store to work against.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from pyamygdala._client import records as _records
from pyamygdala.state.table import Record

if TYPE_CHECKING:
    from pyamygdala.client import Amygdala


class BoundRecord(Mapping[str, Any]):
    """Read-only view of a record plus the operations that need its store.

    Usage::

        team = store.bind("teams", store.find("teams", "/api/v2/team/9/"))
        members = await team.get_related("members")
        await team.update({"name": "Renamed"})
    """

    def __init__(self, client: Amygdala, type_name: str, data: Mapping[str, Any]) -> None:
        client.registry.require(type_name)
        self._client = client
        self._type_name = type_name
        self._data: Record = dict(data)

    @property
    def type_name(self) -> str:
        return self._type_name

    @property
    def data(self) -> Record:
        """A copy of the current record data."""
        return dict(self._data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"BoundRecord({self._type_name!r}, {self._data!r})"

    async def get_related(self, attribute: str | None = None) -> Any:
        return await _records.get_related(self._client, self._type_name, self._data, attribute)

    async def update(self, patch: Mapping[str, Any] | None = None) -> BoundRecord:
        """Merge *patch*, persist it, and adopt the server's response fields."""
        self._data = await _records.update_record(self._client, self._type_name, self._data, patch)
        return self

    async def save(self) -> BoundRecord:
        """Create the record remotely when it has no id yet, otherwise update it."""
        self._data = await _records.save_record(self._client, self._type_name, self._data)
        return self
