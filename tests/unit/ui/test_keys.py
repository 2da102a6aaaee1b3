"""
Tests for raw keyboard decoding.
"""

import pytest

from dtrader.ui.keys import decode_key, iter_keys

pytestmark = pytest.mark.unit


class TestDecodeKey:
    @pytest.mark.parametrize(
        "data,name",
        [
            (b"\x18", "CTRL_X"),
            (b"\x03", "CTRL_C"),
            (b"\x01", "CTRL_A"),
            (b"\r", "ENTER"),
            (b"\n", "ENTER"),
            (b"\t", "TAB"),
            (b"\x7f", "BACKSPACE"),
            (b"\x00", "CTRL_SPACE"),
            (b"\x1b", "ESCAPE"),
            (b"\x1b[A", "UP"),
            (b"\x1bOB", "DOWN"),
            (b"\x1b[3~", "DELETE"),
            (b"\x1b[15~", "F5"),
            (b"\x1bOP", "F1"),
            (b"\x1b[Z", "SHIFT_TAB"),
            (b"q", "q"),
            ("é".encode(), "é"),
        ],
    )
    def test_single_keys(self, data, name):
        assert decode_key(data) == name

    def test_empty_input(self):
        assert decode_key(b"") == ""
        assert list(iter_keys(b"")) == []


class TestIterKeys:
    def test_pasted_text_splits_into_keys(self):
        assert [name for name, _ in iter_keys(b"hi!")] == ["h", "i", "!"]

    def test_mixed_sequence(self):
        keys = list(iter_keys(b"a\x1b[Bz\x18"))

        assert keys == [("a", b"a"), ("DOWN", b"\x1b[B"), ("z", b"z"), ("CTRL_X", b"\x18")]

    def test_unknown_escape_sequence_degrades_to_escape(self):
        names = [name for name, _ in iter_keys(b"\x1b[99~")]

        assert names[0] == "ESCAPE"
        assert names[1:] == ["[", "9", "9", "~"]

    def test_truncated_utf8_is_replaced(self):
        ((name, raw),) = list(iter_keys(b"\xc3"))

        assert raw == b"\xc3"
        assert name == "\ufffd"
