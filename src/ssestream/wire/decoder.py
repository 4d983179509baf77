"""Incremental byte-to-text decoding and line assembly for SSE streams.

Chunks arrive at arbitrary byte boundaries: a UTF-8 codepoint, a line or a
whole event record may be split between two reads. ``StreamDecoder`` holds
back incomplete multi-byte sequences and ``LineBuffer`` holds back the
incomplete trailing line, so downstream only ever sees whole lines.
"""

from __future__ import annotations

import codecs


class StreamDecoder:
    """Stateful UTF-8 decoder for a single response body.

    Uses the ``utf-8-sig`` codec so a byte-order mark at the very start of the
    stream is dropped. Malformed input raises ``UnicodeDecodeError``.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="strict")

    def decode(self, chunk: bytes) -> str:
        """Decode a chunk, retaining any incomplete trailing sequence."""
        return self._decoder.decode(chunk)

    def reset(self) -> None:
        self._decoder.reset()


class LineBuffer:
    """Splits decoded text into complete ``\\n``-terminated lines."""

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """The incomplete trailing fragment carried to the next chunk."""
        return self._buffer

    def feed(self, text: str) -> list[str]:
        """Append text and return every line completed by it, in order."""
        self._buffer += text
        if not self._buffer:
            return []

        lines = self._buffer.split("\n")
        if self._buffer.endswith("\n"):
            # Ends on a boundary: the empty tail after the final "\n" is not a line.
            lines.pop()
            self._buffer = ""
        else:
            self._buffer = lines.pop()
        return lines

    def reset(self) -> None:
        self._buffer = ""
