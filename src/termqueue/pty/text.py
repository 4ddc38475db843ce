"""Cleaning of raw terminal output."""

from __future__ import annotations

import re

# CSI sequences, OSC sequences (BEL or ST terminated), and two-byte escapes.
_ANSI_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def sanitize_binary_output(text: str) -> str:
    """Remove control characters and other binary garbage.

    Keeps printable chars, tabs, newlines, and carriage returns.
    """
    return "".join(
        ch
        for ch in text
        if ch in ("\t", "\n", "\r")
        or (ord(ch) >= 32 and not 0x7F <= ord(ch) < 0xA0 and not 0xFFF9 <= ord(ch) < 0xFFFC)
    )


def clean_output(text: str) -> str:
    """Strip escapes, drop binary garbage and normalize line endings."""
    cleaned = sanitize_binary_output(strip_ansi(text))
    return cleaned.replace("\r\n", "\n")
