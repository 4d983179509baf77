"""EventSource: a long-lived SSE subscription over httpx.

Opens a streaming GET, validates the response, feeds the body through the
decoder and parser, and dispatches events to listeners. Failures are
reported as ``error`` events and followed by a reconnection after the
current delay; only ``close()`` or a 204 response end the subscription.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from ssestream.config import ClientConfig
from ssestream.connection.errors import ProtocolRejected, StreamEnded, TransportFailure
from ssestream.connection.listeners import Listener, ListenerRegistry
from ssestream.connection.reconnect import ReconnectPolicy
from ssestream.connection.state_machine import ReadyState, transition
from ssestream.wire.decoder import StreamDecoder
from ssestream.wire.sse_parser import SSEEvent, SSEParser

log = structlog.get_logger()

DebugLog = Callable[[str, Any], None]

EVENT_STREAM = "text/event-stream"


def origin_of(url: str) -> str:
    """Return the ``scheme://host[:port]`` origin of a URL."""
    parsed = httpx.URL(url)
    host = parsed.host
    if ":" in host:
        host = f"[{host}]"
    origin = f"{parsed.scheme}://{host}"
    if parsed.port is not None:
        origin += f":{parsed.port}"
    return origin


class EventSource:
    """Client side of a Server-Sent Events subscription.

    Must be created inside a running event loop: the first connection
    attempt is started as a task immediately.

    Args:
        url: The event stream URL.
        headers: Extra request headers. They override the ``Accept`` and
            ``Cache-Control`` defaults.
        with_credentials: Send ``auth`` (or the client's default auth) with
            the request. When false the request is sent with ``auth=None``.
        auth: httpx auth used when ``with_credentials`` is set.
        debug_log: Optional ``(message, data)`` callback receiving every
            diagnostic, for hosts that don't use structlog.
        reconnect_delay_ms: Initial reconnection delay. Defaults to
            ``config.reconnect_delay_ms``.
        http_client: An httpx.AsyncClient to use. When omitted one is created
            from ``config`` and closed by ``aclose()``.
        config: Client configuration, read from the environment by default.
    """

    CONNECTING = ReadyState.CONNECTING
    OPEN = ReadyState.OPEN
    CLOSED = ReadyState.CLOSED

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        with_credentials: bool = False,
        auth: httpx.Auth | None = None,
        debug_log: DebugLog | None = None,
        reconnect_delay_ms: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.url = url
        self.with_credentials = with_credentials
        self._auth = auth
        self._headers = dict(headers or {})
        self._debug_log = debug_log

        self._state = ReadyState.CONNECTING
        self._listeners = ListenerRegistry()
        if reconnect_delay_ms is None:
            reconnect_delay_ms = self.config.reconnect_delay_ms
        self._reconnect = ReconnectPolicy(reconnect_delay_ms, url)
        self._origin = origin_of(url)
        self._decoder = StreamDecoder()
        self._parser = SSEParser(origin=self._origin, on_retry=self._reconnect.set_delay)

        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.connect_timeout, read=None),
                follow_redirects=self.config.follow_redirects,
            )
        self._client = http_client
        self._attempt: asyncio.Task[None] | None = None

        self._start_attempt()

    @property
    def ready_state(self) -> ReadyState:
        return self._state

    @property
    def last_event_id(self) -> str | None:
        return self._parser.last_event_id

    @property
    def reconnect_delay_ms(self) -> int:
        """Delay that the next reconnection will wait."""
        return self._reconnect.delay_ms

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.add(event_type, listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.remove(event_type, listener)

    def dispatch_event(self, event: SSEEvent) -> None:
        """Deliver an event synchronously to the listeners of its type."""
        log.debug(
            "sse_event_dispatched",
            url=self.url,
            type=event.type,
            listeners=self._listeners.count(event.type),
        )
        self._listeners.dispatch(event.type, event)

    def close(self) -> None:
        """Stop the subscription: no further attempts, timers or dispatches."""
        self._state = transition(self._state, ReadyState.CLOSED, self.url, trigger="close")
        self._reconnect.cancel()
        if self._attempt is not None and not self._attempt.done():
            self._debug("sse_attempt_cancelled")
            self._attempt.cancel()

    async def aclose(self) -> None:
        """Close, wait for the in-flight attempt to unwind and release the client."""
        self.close()
        attempt = self._attempt
        if attempt is not None and attempt is not asyncio.current_task():
            await asyncio.wait([attempt])
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> EventSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _debug(self, message: str, **data: Any) -> None:
        log.debug(message, url=self.url, **data)
        if self._debug_log is not None:
            self._debug_log(f"[EventSource] {message}", data or None)

    def _start_attempt(self) -> None:
        if self._state is ReadyState.CLOSED:
            self._debug("sse_closed_not_reconnecting")
            return
        loop = asyncio.get_running_loop()
        self._attempt = loop.create_task(self._connect())

    def _request_headers(self) -> dict[str, str]:
        headers = {
            "Accept": EVENT_STREAM,
            "Cache-Control": "no-cache",
            **self._headers,
        }
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id
        return headers

    async def _connect(self) -> None:
        if self._state is ReadyState.CLOSED:
            self._debug("sse_closed_not_reconnecting")
            return

        headers = self._request_headers()
        self._debug("sse_connecting", headers=sorted(headers))
        auth: Any = httpx.USE_CLIENT_DEFAULT if self._auth is None else self._auth
        if not self.with_credentials:
            auth = None

        try:
            async with self._client.stream(
                "GET", self.url, headers=headers, auth=auth
            ) as response:
                if self._accept(response):
                    await self._receive(response)
        except httpx.HTTPError as exc:
            self._fail(TransportFailure(str(exc) or exc.__class__.__name__))
        except Exception as exc:
            self._fail(exc)

    def _accept(self, response: httpx.Response) -> bool:
        """Validate the response; False means the server ended the stream."""
        status = response.status_code
        if not response.is_success:
            self._debug("sse_http_error", status=status)
            raise ProtocolRejected(f"HTTP error! status: {status}", status=status)

        if status == 204:
            self._debug("sse_stream_terminated", status=status)
            self._state = transition(self._state, ReadyState.CLOSED, self.url, trigger="http_204")
            self._reconnect.cancel()
            self.dispatch_event(
                SSEEvent(
                    type="error",
                    data="HTTP 204: server closed the stream",
                    last_event_id=self.last_event_id,
                    origin=self._origin,
                )
            )
            return False

        content_type = response.headers.get("content-type")
        if not content_type or EVENT_STREAM not in content_type:
            self._debug("sse_invalid_content_type", content_type=content_type)
            raise ProtocolRejected(
                f"Invalid Content-Type: {content_type}",
                status=status,
                content_type=content_type,
            )

        self._debug("sse_connected", status=status)
        if self._state is ReadyState.CONNECTING:
            self._state = transition(self._state, ReadyState.OPEN, self.url, trigger="accepted")
            self.dispatch_event(SSEEvent(type="open", origin=self._origin))
        return True

    async def _receive(self, response: httpx.Response) -> None:
        self._decoder.reset()
        self._parser.reset()

        async for chunk in response.aiter_bytes():
            if self._state is ReadyState.CLOSED:
                return
            for event in self._parser.iter_events(self._decoder.decode(chunk)):
                if self._state is ReadyState.CLOSED:
                    return
                self.dispatch_event(event)

        if self._state is ReadyState.CLOSED:
            return
        raise StreamEnded()

    def _fail(self, exc: Exception) -> None:
        message = str(exc) or exc.__class__.__name__
        if self._state is ReadyState.CLOSED:
            self._debug("sse_error_after_close", error=message)
            return

        log.warning(
            "sse_connection_error",
            url=self.url,
            error=message,
            error_type=exc.__class__.__name__,
            retry_in_ms=self._reconnect.delay_ms,
        )
        if self._debug_log is not None:
            self._debug_log("[EventSource] sse_connection_error", {"error": message})

        self._state = transition(self._state, ReadyState.CONNECTING, self.url, trigger="failure")
        # Armed before dispatch so an error listener calling close() cancels it
        self._reconnect.schedule(self._start_attempt)
        self.dispatch_event(
            SSEEvent(
                type="error",
                data=message,
                last_event_id=self.last_event_id,
                origin=self._origin,
            )
        )
