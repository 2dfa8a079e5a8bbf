"""Custom exception hierarchy for pyamygdala."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class AmygdalaError(Exception):
    """Base exception for all pyamygdala errors."""


class AmygdalaConfigError(AmygdalaError):
    """Invalid or missing configuration (schema, base URL, storage)."""


class UnknownTypeError(AmygdalaError):
    """A type name is not registered in the schema (or has no endpoint)."""

    def __init__(self, type_name: Any, valid_types: Iterable[str]) -> None:
        self.type_name = type_name
        self.valid_types = tuple(valid_types)
        super().__init__(f"Invalid type {type_name!r}. Acceptable types are: {', '.join(self.valid_types)}")


class InvalidPayloadError(AmygdalaError):
    """A response could not be ingested (malformed JSON or malformed record)."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)


class InvalidQueryError(AmygdalaError):
    """Query argument to ``find``/``find_all`` has an unsupported shape."""

    def __init__(self, message: str, *, query: Any = None) -> None:
        self.query = query
        super().__init__(message)


class MissingIdentityError(AmygdalaError):
    """Update/remove on an object with neither an id nor an explicit ``url``."""

    def __init__(self, type_name: str, id_attribute: str) -> None:
        self.type_name = type_name
        self.id_attribute = id_attribute
        super().__init__(f"Missing required object.url or {id_attribute} attribute for {type_name!r}")


class AmygdalaTransportError(AmygdalaError):
    """HTTP-level failure (network error or non-2xx status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
        method: str = "",
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        self.method = method
        self.body = body
        super().__init__(message)
