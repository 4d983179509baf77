"""Reconnection scheduling: at most one pending attempt per connection."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

log = structlog.get_logger()


class ReconnectPolicy:
    """Owns the single pending reconnection timer of a connection.

    ``delay_ms`` applies to the next call to ``schedule``; a server ``retry``
    directive updates it without touching a timer that is already armed.
    """

    def __init__(self, delay_ms: int, url: str = "") -> None:
        self.delay_ms = delay_ms
        self.url = url
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def set_delay(self, delay_ms: int) -> None:
        log.debug("sse_retry_updated", url=self.url, delay_ms=delay_ms)
        self.delay_ms = delay_ms

    def schedule(self, callback: Callable[[], None]) -> None:
        """Arm a timer for ``callback``, replacing any pending one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay_ms / 1000, self._fire, callback)
        log.debug("sse_reconnect_scheduled", url=self.url, delay_ms=self.delay_ms)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._timer = None
        callback()
