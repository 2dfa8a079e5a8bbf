"""Persistence port for the optional local table cache.

The store only needs ``get_item``/``set_item`` over string values, keyed as
``"<prefix>-<type>"`` (see :meth:`pyamygdala.config.StoreConfig.storage_key`).
"""

from __future__ import annotations

from typing import Protocol


class PersistencePort(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Dict-backed :class:`PersistencePort`."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
