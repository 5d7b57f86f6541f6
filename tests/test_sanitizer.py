"""Tests for output sanitization."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from runbox.services.execution import sanitize

CONTROL_CHARS = [chr(c) for c in range(0x00, 0x20)] + [chr(c) for c in range(0x7F, 0xA0)]


def test_collapses_whitespace():
    assert sanitize("a  b") == "a b"
    assert sanitize("line one\n\nline two\t\tend") == "line one line two end"


def test_trims():
    assert sanitize("  \n 2\n") == "2"


@pytest.mark.parametrize("raw", ["", "   ", "\n\t\r", "\x00\x07\x1b", " \x07 \x9b \n"])
def test_blank_or_control_only_input_is_empty(raw):
    assert sanitize(raw) == ""


def test_strips_control_bytes_next_to_text():
    assert sanitize("ding\x07dong") == "dingdong"
    assert sanitize("\x1b[31mred\x1b[0m") == "[31mred[0m"
    assert sanitize("a \x07 b") == "a b"


def test_separator_controls_and_unicode_spaces():
    # Separator controls are stripped, not turned into spaces
    assert sanitize("a\x1fb") == "ab"
    assert sanitize("a\x85b") == "ab"
    # Byte order mark and no-break spaces count as whitespace
    assert sanitize("a\ufeffb") == "a b"
    assert sanitize("\ufeff a\u00a0\u3000b \ufeff") == "a b"


def test_accepts_bytes():
    assert sanitize(b"hello\r\nworld\n") == "hello world"
    assert sanitize(b"bad \xff byte") == "bad � byte"


@given(st.text())
def test_idempotent(raw):
    once = sanitize(raw)
    assert sanitize(once) == once


@given(st.text())
def test_output_has_no_controls_or_runs(raw):
    result = sanitize(raw)
    assert not any(ch in result for ch in CONTROL_CHARS)
    assert "  " not in result
    assert result == result.strip()


@given(st.binary())
def test_total_on_bytes(raw):
    assert isinstance(sanitize(raw), str)
