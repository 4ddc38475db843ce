"""Transcript of everything a PTY session printed."""

from __future__ import annotations

from collections import deque


class OutputBuffer:
    """Bounded transcript of cleaned subprocess output.

    Offsets are absolute: ``mark()`` returns the number of characters ever
    appended, and stays meaningful after old text has been discarded to
    keep the transcript under ``max_chars``.

    Text is kept as the chunks it arrived in, so appending and trimming
    touch only the chunks at either end.
    """

    def __init__(self, max_chars: int = 1_000_000) -> None:
        self._chunks: deque[str] = deque()
        self._size = 0  # Characters retained
        self._dropped = 0  # Characters discarded from the front
        self._max_chars = max_chars

    def append(self, text: str) -> None:
        if not text:
            return
        self._chunks.append(text)
        self._size += len(text)
        self._trim()

    def _trim(self) -> None:
        overflow = self._size - self._max_chars
        while overflow > 0:
            head = self._chunks[0]
            if len(head) <= overflow:
                self._chunks.popleft()
                cut = len(head)
            else:
                self._chunks[0] = head[overflow:]
                cut = overflow
            self._size -= cut
            self._dropped += cut
            overflow -= cut

    def mark(self) -> int:
        """Absolute offset of the end of the transcript."""
        return self._dropped + self._size

    def read_since(self, mark: int) -> str:
        """Text appended after ``mark`` (what is left of it, if trimmed)."""
        wanted = self._size - max(mark - self._dropped, 0)
        if wanted <= 0:
            return ""
        parts: list[str] = []
        for chunk in reversed(self._chunks):
            if len(chunk) >= wanted:
                parts.append(chunk[len(chunk) - wanted :])
                break
            parts.append(chunk)
            wanted -= len(chunk)
        return "".join(reversed(parts))

    def read_all(self) -> str:
        return "".join(self._chunks)

    def __len__(self) -> int:
        return self._size
