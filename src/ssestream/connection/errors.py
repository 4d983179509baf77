"""Connection failure taxonomy.

Every failure is contained by the EventSource: it is reported to listeners
as an ``error`` event and, unless the connection is closed, followed by a
reconnection.
"""

from __future__ import annotations


class ConnectionFailure(Exception):
    """A connection attempt or its receive loop failed."""


class TransportFailure(ConnectionFailure):
    """The HTTP transport raised (network, DNS, TLS, protocol)."""


class ProtocolRejected(ConnectionFailure):
    """The response was not an acceptable event stream."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        content_type: str | None = None,
    ) -> None:
        self.status = status
        self.content_type = content_type
        super().__init__(message)


class StreamEnded(ConnectionFailure):
    """The response body ended without the connection being closed."""

    def __init__(self) -> None:
        super().__init__("Stream ended unexpectedly")
