"""Change events.

:class:`EventEmitter` is the publish/subscribe primitive the store reports
through; :class:`ChangeNotifier` owns the per-type debounce policy on top of
it (one pending timer per type, re-armed on every write).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event*; returns a callable that unregisters it."""
        self._handlers.setdefault(event, []).append(handler)

        def _unsubscribe() -> None:
            self.off(event, handler)

        return _unsubscribe

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            return
        with contextlib.suppress(ValueError):
            handlers.remove(handler)
        if not handlers:
            del self._handlers[event]

    def emit(self, event: str, *args: Any) -> None:
        """Call every handler for *event*.

        A failing handler is logged and does not prevent the remaining
        handlers from running.
        """
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception:
                _logger.debug("%s handler %r failed", event, handler, exc_info=True)


class ChangeNotifier:
    """Per-type trailing-edge debounced change signal.

    Each :meth:`notify` for a type cancels that type's pending timer and
    schedules a new one ``delay`` seconds out, so a burst of writes produces
    a single emission once the type has been quiet for the whole window.
    Types debounce independently.

    Without a running event loop there is no window to wait for, so the
    emission happens immediately.
    """

    def __init__(
        self,
        emit: Callable[[str], None],
        *,
        delay: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._emit = emit
        self._delay = delay
        self._loop = loop
        self._pending: dict[str, asyncio.TimerHandle] = {}

    def _running_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def notify(self, type_name: str) -> None:
        loop = self._running_loop()
        if loop is None:
            _logger.debug("No running loop; emitting change for %s immediately", type_name)
            self._emit(type_name)
            return

        pending = self._pending.pop(type_name, None)
        if pending is not None:
            pending.cancel()
        self._pending[type_name] = loop.call_later(self._delay, self._fire, type_name)

    def _fire(self, type_name: str) -> None:
        self._pending.pop(type_name, None)
        _logger.debug("Emitting debounced change for %s", type_name)
        self._emit(type_name)

    def pending(self) -> list[str]:
        """Type names with a scheduled, not yet emitted, notification."""
        return list(self._pending)

    def flush(self) -> None:
        """Emit every pending notification now."""
        pending = self._pending
        self._pending = {}
        for type_name, handle in pending.items():
            handle.cancel()
            self._emit(type_name)
