"""SSE field parser and event assembler.

Consumes complete lines and assembles them into events per the SSE field
rules (``event``, ``data``, ``id``, ``retry``). A blank line finalizes the
event under construction if it carries data.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from .decoder import LineBuffer

DEFAULT_EVENT_TYPE = "message"

_RETRY_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class SSEEvent:
    """A finalized Server-Sent Event as delivered to listeners."""

    type: str = DEFAULT_EVENT_TYPE
    data: str | None = None
    last_event_id: str | None = None
    origin: str = ""

    def to_bytes(self) -> bytes:
        """Serialize back to SSE wire format."""
        lines: list[str] = []
        if self.type != DEFAULT_EVENT_TYPE:
            lines.append(f"event: {self.type}")
        if self.last_event_id:
            lines.append(f"id: {self.last_event_id}")
        if self.data:
            for data_line in self.data.split("\n"):
                lines.append(f"data: {data_line}")
        lines.append("")  # blank line terminates event
        return ("\n".join(lines) + "\n").encode()


def parse_retry(value: str) -> int | None:
    """Parse a retry value as base-10 milliseconds from its leading digits."""
    match = _RETRY_DIGITS.match(value)
    if match is None:
        return None
    return int(match.group())


@dataclass
class SSEParser:
    """Incremental SSE parser that turns text into finalized events.

    ``last_event_id`` persists across events and across ``reset()``; the
    in-progress event does not. A parsed ``retry`` field is reported to
    ``on_retry`` and never becomes an event.
    """

    origin: str = ""
    on_retry: Callable[[int], None] | None = None
    last_event_id: str | None = None
    _lines: LineBuffer = field(default_factory=LineBuffer)
    _data: list[str] = field(default_factory=list)
    _event_type: str = DEFAULT_EVENT_TYPE

    def feed(self, text: str) -> list[SSEEvent]:
        """Feed a chunk of decoded text, return any complete events."""
        return list(self.iter_events(text))

    def iter_events(self, text: str) -> Iterator[SSEEvent]:
        """Feed a chunk of decoded text, yielding each event as it is finalized.

        Lines after an event are not applied until the consumer resumes, so
        ``last_event_id`` never runs ahead of the event being handled. Lines
        left unconsumed when iteration stops are dropped.
        """
        for line in self._lines.feed(text):
            event = self.feed_line(line)
            if event is not None:
                yield event

    def feed_line(self, line: str) -> SSEEvent | None:
        """Apply one complete line, returning an event on a dispatch boundary."""
        line = line.strip()

        if not line:
            return self._finalize()

        field_name, sep, value = line.partition(":")
        if not sep:
            # No colon: not a field
            return None
        if not field_name:
            # Comment
            return None
        value = value.strip()

        if field_name == "event":
            # Empty value falls back to the default; an empty type has no listeners
            self._event_type = value or DEFAULT_EVENT_TYPE
        elif field_name == "data":
            if value:
                self._data.append(value[:-1] if value.endswith("\n") else value)
        elif field_name == "id":
            if "\0" not in value:
                self.last_event_id = value or None
        elif field_name == "retry":
            retry = parse_retry(value)
            if retry is not None and self.on_retry is not None:
                self.on_retry(retry)
        return None

    def reset(self) -> None:
        """Discard the partial line and the event under construction."""
        self._lines.reset()
        self._data = []
        self._event_type = DEFAULT_EVENT_TYPE

    def _finalize(self) -> SSEEvent | None:
        if not self._data:
            return None
        event = SSEEvent(
            type=self._event_type,
            data="\n".join(self._data),
            last_event_id=self.last_event_id,
            origin=self.origin,
        )
        self._data = []
        self._event_type = DEFAULT_EVENT_TYPE
        return event
