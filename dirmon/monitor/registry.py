"""Listener registry.

Maps a unique listener name to its callback.  The dispatcher reads the
registry once per event while callers register and unregister listeners
freely; every read works on an atomic copy of the underlying dict, so a
mutation never disturbs a fan-out already in progress.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from dirmon.models.changes import ChangeEvent
from dirmon.observability.metrics import registered_listeners

_log = structlog.get_logger(component="monitor.registry")

Listener = Callable[[ChangeEvent], Awaitable[object] | object]


class ListenerNameError(ValueError):
    """Raised when a listener name is empty."""


class ListenerRegistry:
    """Concurrency-safe mapping of listener name to callback."""

    def __init__(self) -> None:
        self._entries: dict[str, Listener] = {}

    def register(self, name: str, callback: Listener) -> None:
        """Add *callback* under *name*, replacing any existing entry."""
        if not name:
            raise ListenerNameError("listener name must not be empty")
        replaced = name in self._entries
        self._entries[name] = callback
        registered_listeners.set(len(self._entries))
        _log.debug("listener_registered", listener=name, replaced=replaced)

    def unregister(self, name: str) -> None:
        """Remove the listener called *name*; unknown names are ignored."""
        if not name:
            raise ListenerNameError("listener name must not be empty")
        removed = self._entries.pop(name, None) is not None
        registered_listeners.set(len(self._entries))
        _log.debug("listener_unregistered", listener=name, removed=removed)

    def snapshot(self) -> dict[str, Listener]:
        """Return a point-in-time copy of all entries."""
        return self._entries.copy()

    def names(self) -> list[str]:
        return sorted(self.snapshot())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
