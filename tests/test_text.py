"""Tests for termqueue.pty.text."""

from __future__ import annotations

from termqueue.pty.text import clean_output, sanitize_binary_output, strip_ansi


class TestStripAnsi:
    def test_color_codes(self) -> None:
        assert strip_ansi("\x1b[31mred\x1b[0m") == "red"

    def test_cursor_movement(self) -> None:
        assert strip_ansi("a\x1b[2Kb\x1b[10;20Hc") == "abc"

    def test_private_modes(self) -> None:
        assert strip_ansi("\x1b[?2004hprompt$ ") == "prompt$ "

    def test_osc_title(self) -> None:
        assert strip_ansi("\x1b]0;user@host\x07$ ") == "$ "
        assert strip_ansi("\x1b]2;title\x1b\\$ ") == "$ "

    def test_plain_text_untouched(self) -> None:
        assert strip_ansi("no escapes here") == "no escapes here"


class TestSanitizeBinaryOutput:
    def test_keeps_whitespace(self) -> None:
        assert sanitize_binary_output("a\tb\nc\rd") == "a\tb\nc\rd"

    def test_drops_control_chars(self) -> None:
        assert sanitize_binary_output("a\x00b\x07c\x7fd") == "abcd"

    def test_keeps_unicode(self) -> None:
        assert sanitize_binary_output("héllo ✓") == "héllo ✓"


class TestCleanOutput:
    def test_normalizes_crlf(self) -> None:
        assert clean_output("one\r\ntwo\r\n") == "one\ntwo\n"

    def test_combined(self) -> None:
        assert clean_output("\x1b[1mbold\x1b[0m\r\n\x00$ ") == "bold\n$ "
