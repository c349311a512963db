"""Synchronous, ordered subscription channels."""

from __future__ import annotations

import logging
from typing import Any, Callable

_LOGGER = logging.getLogger("gridexplorer.events")

Handler = Callable[..., Any]


class Subscription:
    """Handle returned by :meth:`EventChannel.subscribe`."""

    def __init__(self, channel: EventChannel, handler: Handler) -> None:
        self._channel = channel
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self._handler)


class EventChannel:
    """Handlers run on the caller's thread, in registration order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: Handler) -> Subscription:
        self._handlers.append(handler)
        return Subscription(self, handler)

    def emit(self, *args: Any) -> None:
        # Snapshot so handlers may unsubscribe while being notified.
        for handler in list(self._handlers):
            handler(*args)
        _LOGGER.debug("Emitted %s to %d handlers", self.name, len(self._handlers))

    def clear(self) -> None:
        self._handlers.clear()

    def _remove(self, handler: Handler) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass
