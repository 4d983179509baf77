"""Per-event-type listener registry."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Listener = Callable[[Any], None]


class ListenerRegistry:
    """Maps event types to ordered sets of callbacks and dispatches to them."""

    def __init__(self) -> None:
        # dict keys as an insertion-ordered set
        self._listeners: dict[str, dict[Listener, None]] = {}

    def add(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, {})[listener] = None

    def remove(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners is not None:
            listeners.pop(listener, None)

    def count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, ()))

    def dispatch(self, event_type: str, event: Any) -> None:
        """Call every listener registered for ``event_type`` with ``event``.

        Iterates over a snapshot, so listeners added or removed by a callback
        take effect from the next dispatch. Exceptions raised by a listener
        propagate to the caller.
        """
        listeners = self._listeners.get(event_type)
        if not listeners:
            return
        for listener in list(listeners):
            listener(event)
