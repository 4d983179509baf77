"""Tests for byte decoding and line assembly."""

import pytest

from ssestream.wire.decoder import LineBuffer, StreamDecoder


class TestStreamDecoder:
    def test_ascii(self):
        decoder = StreamDecoder()
        assert decoder.decode(b"data: hi\n") == "data: hi\n"

    def test_codepoint_split_across_chunks(self):
        encoded = "data: héllo €\n".encode()
        euro = encoded.index("€".encode())
        decoder = StreamDecoder()
        first = decoder.decode(encoded[: euro + 1])
        second = decoder.decode(encoded[euro + 1 : euro + 2])
        third = decoder.decode(encoded[euro + 2 :])
        assert first == "data: héllo "
        assert second == ""
        assert first + second + third == "data: héllo €\n"

    def test_byte_by_byte(self):
        text = "event: ünïcödé 🚀\n"
        decoder = StreamDecoder()
        out = "".join(decoder.decode(bytes([b])) for b in text.encode())
        assert out == text

    def test_leading_bom_dropped(self):
        decoder = StreamDecoder()
        assert decoder.decode(b"\xef\xbb") == ""
        assert decoder.decode(b"\xbfdata: x\n") == "data: x\n"

    def test_bom_only_stripped_at_start(self):
        decoder = StreamDecoder()
        assert decoder.decode(b"a") == "a"
        assert decoder.decode("\ufeff".encode()) == "\ufeff"

    def test_malformed_input_raises(self):
        decoder = StreamDecoder()
        with pytest.raises(UnicodeDecodeError):
            decoder.decode(b"data: \xff\n")

    def test_reset_forgets_partial_sequence(self):
        decoder = StreamDecoder()
        decoder.decode("€".encode()[:2])
        decoder.reset()
        assert decoder.decode(b"ok") == "ok"


class TestLineBuffer:
    def test_incomplete_line_retained(self):
        lines = LineBuffer()
        assert lines.feed("data: part 1 ") == []
        assert lines.pending == "data: part 1 "
        assert lines.feed("and part 2\n") == ["data: part 1 and part 2"]
        assert lines.pending == ""

    def test_chunk_ending_on_boundary_keeps_final_line(self):
        lines = LineBuffer()
        assert lines.feed("data: a\n\n") == ["data: a", ""]
        assert lines.pending == ""

    def test_lone_newline_is_blank_line(self):
        lines = LineBuffer()
        lines.feed("data: a\n")
        assert lines.feed("\n") == [""]

    def test_multiple_lines_and_fragment(self):
        lines = LineBuffer()
        assert lines.feed("a\nb\nc") == ["a", "b"]
        assert lines.pending == "c"
        assert lines.feed("d\n") == ["cd"]

    def test_empty_feed(self):
        lines = LineBuffer()
        assert lines.feed("") == []
        assert lines.pending == ""

    def test_reset(self):
        lines = LineBuffer()
        lines.feed("partial")
        lines.reset()
        assert lines.pending == ""
        assert lines.feed("x\n") == ["x"]
