"""Internal constants shared across the library."""

DEFAULT_ID_ATTRIBUTE = "id"
DEFAULT_STORAGE_PREFIX = "amy"
JSON_CONTENT_TYPE = "application/json"

#: Trailing-edge debounce window for per-type change notifications.
CHANGE_DEBOUNCE_SECONDS: float = 0.15

CHANGE_EVENT = "change"

# Schema mapping keys that configure the store rather than declare a type.
RESERVED_SCHEMA_KEYS: frozenset[str] = frozenset(
    {
        "apiUrl",
        "apiBaseUrl",
        "idAttribute",
        "defaultIdAttribute",
        "headers",
        "localStorage",
    }
)


def change_topic(type_name: str) -> str:
    """Per-type change event name (``change:<type>``)."""
    return f"{CHANGE_EVENT}:{type_name}"
