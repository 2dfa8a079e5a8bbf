"""pyamygdala - Async schema-driven entity store for REST APIs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyamygdala")
except PackageNotFoundError:
    __version__ = "0+local"
from pyamygdala._transport import HttpTransport, RawResponse, Transport
from pyamygdala.client import Amygdala
from pyamygdala.config import StoreConfig
from pyamygdala.exceptions import (
    AmygdalaConfigError,
    AmygdalaError,
    AmygdalaTransportError,
    InvalidPayloadError,
    InvalidQueryError,
    MissingIdentityError,
    UnknownTypeError,
)
from pyamygdala.models import OrderBy, TypeSchema
from pyamygdala.persistence import MemoryStorage, PersistencePort
from pyamygdala.records import BoundRecord
from pyamygdala.schema import SchemaRegistry

__all__ = [
    "__version__",
    "Amygdala",
    "AmygdalaConfigError",
    "AmygdalaError",
    "AmygdalaTransportError",
    "BoundRecord",
    "HttpTransport",
    "InvalidPayloadError",
    "InvalidQueryError",
    "MemoryStorage",
    "MissingIdentityError",
    "OrderBy",
    "PersistencePort",
    "RawResponse",
    "SchemaRegistry",
    "StoreConfig",
    "Transport",
    "TypeSchema",
    "UnknownTypeError",
]
