"""Store configuration for pyamygdala."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable, Mapping
from typing import Any

from pyamygdala._constants import CHANGE_DEBOUNCE_SECONDS, DEFAULT_ID_ATTRIBUTE, DEFAULT_STORAGE_PREFIX
from pyamygdala.exceptions import AmygdalaConfigError

HeaderValue = str | Callable[[], str]


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    api_base_url : str
        Absolute base URL every schema endpoint path is appended to.
        Required; the store never guesses an origin.
    id_attribute : str
        Store-wide identifier attribute. A schema entry may override it.
    headers : Mapping[str, str | Callable[[], str]]
        Extra request headers. Callable values are evaluated on every
        request (useful for rotating auth tokens).
    local_storage : bool
        Load/save each type's table through the persistence port.
    storage_prefix : str
        Key prefix for persisted tables (``"<prefix>-<type>"``).
    change_debounce : float
        Trailing-edge debounce window in seconds for change events.
    """

    api_base_url: str
    id_attribute: str = DEFAULT_ID_ATTRIBUTE
    headers: Mapping[str, HeaderValue] = dataclasses.field(default_factory=dict)
    local_storage: bool = False
    storage_prefix: str = DEFAULT_STORAGE_PREFIX
    change_debounce: float = CHANGE_DEBOUNCE_SECONDS

    def __post_init__(self) -> None:
        base = (self.api_base_url or "").strip()
        if not base:
            raise AmygdalaConfigError("api_base_url must be non-empty")
        if "://" not in base:
            raise AmygdalaConfigError(f"api_base_url must be absolute, got {self.api_base_url!r}")
        # Endpoint paths start with '/', keep the join unambiguous.
        object.__setattr__(self, "api_base_url", base.rstrip("/"))
        if not self.id_attribute:
            raise AmygdalaConfigError("id_attribute must be non-empty")
        if self.change_debounce < 0:
            raise AmygdalaConfigError("change_debounce must be >= 0")

    def storage_key(self, type_name: str) -> str:
        return f"{self.storage_prefix}-{type_name}"

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from environment variables.

        Reads ``AMYGDALA_API_BASE_URL`` and the optional ``AMYGDALA_*``
        variables below. Explicit keyword arguments override environment
        values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StoreConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "AMYGDALA_API_BASE_URL": "api_base_url",
            "AMYGDALA_ID_ATTRIBUTE": "id_attribute",
            "AMYGDALA_STORAGE_PREFIX": "storage_prefix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "local_storage" not in overrides:
            config_kwargs["local_storage"] = _env_bool(env.get("AMYGDALA_LOCAL_STORAGE"), False)

        debounce_env = env.get("AMYGDALA_CHANGE_DEBOUNCE")
        if debounce_env is not None and "change_debounce" not in overrides:
            config_kwargs["change_debounce"] = float(debounce_env)

        config_kwargs.update(overrides)
        if "api_base_url" not in config_kwargs:
            raise AmygdalaConfigError("AMYGDALA_API_BASE_URL is not set")

        return cls(**config_kwargs)
