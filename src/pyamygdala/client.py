"""High-level async client: schema-driven entity store with remote sync."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

import aiohttp

from pyamygdala._client import records as _records
from pyamygdala._client import sync as _sync
from pyamygdala._constants import CHANGE_EVENT, change_topic
from pyamygdala._transport import HttpTransport, Transport
from pyamygdala.config import StoreConfig
from pyamygdala.exceptions import AmygdalaConfigError, AmygdalaError, InvalidPayloadError
from pyamygdala.persistence import PersistencePort
from pyamygdala.records import BoundRecord
from pyamygdala.schema import SchemaRegistry
from pyamygdala.state.events import ChangeNotifier, EventEmitter, Handler
from pyamygdala.state.store import EntityStore
from pyamygdala.state.table import Record

_logger = logging.getLogger(__name__)


class Amygdala:
    """Client-side entity store with remote sync.

    Usage::

        config = StoreConfig(api_base_url="https://api.example.com")
        async with Amygdala(config, schema) as store:
            await store.get("teams")
            team = store.find("teams", 9)
            members = await store.bind("teams", team).get_related("members")

    Reads (:meth:`find`, :meth:`find_all`) are synchronous and served from
    memory; sync operations (:meth:`get`, :meth:`add`, :meth:`update`,
    :meth:`remove`) go through the transport and feed the response back into
    the store.
    """

    def __init__(
        self,
        config: StoreConfig,
        schema: SchemaRegistry | Mapping[str, Any],
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        storage: PersistencePort | None = None,
    ) -> None:
        self._config = config
        if isinstance(schema, SchemaRegistry):
            self._registry = schema
        else:
            self._registry = SchemaRegistry(schema, default_id_attribute=config.id_attribute)
        self._events = EventEmitter()
        self._notifier = ChangeNotifier(self._emit_change, delay=config.change_debounce)
        self._store = EntityStore(self._registry, on_change=self._notifier.notify)
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        self._storage = storage

        if config.local_storage:
            if storage is None:
                raise AmygdalaConfigError("local_storage is enabled but no storage port was given")
            self._load_cache()
            self.on(CHANGE_EVENT, self._persist)

    @classmethod
    def from_schema(cls, mapping: Mapping[str, Any], **kwargs: Any) -> Amygdala:
        """Build a client from the flat schema configuration mapping.

        ``apiUrl``/``apiBaseUrl`` and ``idAttribute`` are read from the
        mapping; other keyword arguments are passed to the constructor, with
        :class:`StoreConfig` fields accepted directly.
        """
        registry, api_base_url = SchemaRegistry.from_mapping(mapping)
        config_fields = {"id_attribute", "headers", "local_storage", "storage_prefix", "change_debounce"}
        config_kwargs = {key: kwargs.pop(key) for key in list(kwargs) if key in config_fields}
        base = kwargs.pop("api_base_url", None) or api_base_url
        if not base:
            raise AmygdalaConfigError("schema mapping has no apiUrl/apiBaseUrl")
        config_kwargs.setdefault("id_attribute", registry.default_id_attribute)
        if "headers" in mapping:
            config_kwargs.setdefault("headers", mapping["headers"])
        if "localStorage" in mapping:
            config_kwargs.setdefault("local_storage", bool(mapping["localStorage"]))
        return cls(StoreConfig(api_base_url=base, **config_kwargs), registry, **kwargs)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Amygdala:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._notifier.flush()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise AmygdalaError("Client not initialized. Use 'async with Amygdala(...) as store:'")
        return self._transport

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Subscribe to ``"change"`` (called with the type name) or ``"change:<type>"``."""
        return self._events.on(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self._events.off(event, handler)

    def _emit_change(self, type_name: str) -> None:
        self._events.emit(CHANGE_EVENT, type_name)
        self._events.emit(change_topic(type_name))

    # ------------------------------------------------------------------
    # Local ingestion and reads
    # ------------------------------------------------------------------

    def set(self, type_name: str, response: Any, *, silent: bool = False) -> Record | list[Record]:
        """Ingest a raw response without any network call."""
        return self._store.set(type_name, response, silent=silent)

    def find(self, type_name: str, query: Any = None) -> Record | None:
        """First record matching *query* (predicate mapping) or the record with id *query*."""
        return self._store.find(type_name, query)

    def find_all(self, type_name: str, query: Any = None) -> list[Record]:
        """All records of *type_name*, optionally filtered, in schema ``orderBy`` order."""
        return self._store.find_all(type_name, query)

    def bind(self, type_name: str, record: Mapping[str, Any] | Any) -> BoundRecord:
        """Wrap a record (or the id of a stored one) in a :class:`BoundRecord`."""
        if not isinstance(record, Mapping):
            found = self._store.find(type_name, record)
            if found is None:
                raise KeyError(f"{type_name} has no record with id {record!r}")
            record = found
        return BoundRecord(self, type_name, record)

    # ------------------------------------------------------------------
    # Remote sync
    # ------------------------------------------------------------------

    async def get(
        self,
        type_name: str,
        params: Mapping[str, Any] | None = None,
        *,
        url: str | None = None,
        silent: bool = False,
    ) -> Record | list[Record]:
        """GET ``type_name`` (querystring from *params*) and ingest the response."""
        return await _sync.get(self, type_name, params, url=url, silent=silent)

    async def add(
        self,
        type_name: str,
        obj: Mapping[str, Any],
        *,
        url: str | None = None,
        silent: bool = False,
    ) -> Record | list[Record]:
        """POST a new object and ingest the created record."""
        return await _sync.add(self, type_name, obj, url=url, silent=silent)

    async def update(
        self,
        type_name: str,
        obj: Mapping[str, Any],
        *,
        silent: bool = False,
    ) -> Record | list[Record]:
        """PUT an existing object (located by ``url`` or id) and ingest the response."""
        return await _sync.update(self, type_name, obj, silent=silent)

    async def remove(self, type_name: str, obj: Mapping[str, Any], *, silent: bool = False) -> Record | None:
        """DELETE an object remotely, then drop it from the local table."""
        return await _sync.remove(self, type_name, obj, silent=silent)

    async def get_related(
        self,
        type_name: str,
        record: Mapping[str, Any],
        attribute: str | None = None,
    ) -> Any:
        return await _records.get_related(self, type_name, record, attribute)

    async def save(self, type_name: str, record: Mapping[str, Any]) -> Record:
        return await _records.save_record(self, type_name, record)

    # ------------------------------------------------------------------
    # Local cache
    # ------------------------------------------------------------------

    def _require_storage(self) -> PersistencePort:
        if self._storage is None:
            raise AmygdalaConfigError("No storage port configured")
        return self._storage

    def set_cache(self, type_name: str, records: list[Record]) -> None:
        self._registry.require(type_name)
        storage = self._require_storage()
        storage.set_item(self._config.storage_key(type_name), json.dumps(records))

    def get_cache(self, type_name: str) -> Any:
        self._registry.require(type_name)
        raw = self._require_storage().get_item(self._config.storage_key(type_name))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidPayloadError(f"Cached {type_name} table is not JSON: {raw[:200]}", payload=raw) from exc

    def _persist(self, type_name: str) -> None:
        self.set_cache(type_name, self.find_all(type_name))

    def _load_cache(self) -> None:
        for type_name in self._registry:
            cached = self.get_cache(type_name)
            if cached:
                self._store.set(type_name, cached, silent=True)
                _logger.debug("Loaded cached %s table", type_name)
