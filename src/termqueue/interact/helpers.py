"""Ready-made generators for common exchanges."""

from __future__ import annotations

import logging
import re
from collections.abc import Generator
from typing import TYPE_CHECKING, Any, Callable

from termqueue.interact.interaction import Callback, Interaction, InteractionAdapter
from termqueue.interact.steps import KEEP_WAITING, TIMEOUT, FireAndForget, WaitUntil

if TYPE_CHECKING:
    from termqueue.pty.buffer import OutputBuffer

logger = logging.getLogger(__name__)


def send_string(text: str, fire_and_forget: bool = False) -> Generator[Any, Any, None]:
    """Send ``text`` once.

    By default the queue waits for a response (or a timeout) before the
    next generator runs. With ``fire_and_forget`` it moves on immediately.
    """
    if fire_and_forget:
        yield FireAndForget(text)
    else:
        yield text


def interact(
    callback: Callback, cleanup: Callable[[], None] | None = None
) -> InteractionAdapter:
    """Build an interaction from a callback and wrap it for the queue."""
    return InteractionAdapter(Interaction(callback, cleanup))


class _TranscriptMatcher:
    """Accept predicate: does the output since ``start`` match ``pattern``?"""

    def __init__(self, buffer: OutputBuffer, pattern: re.Pattern[str], start: int) -> None:
        self.buffer = buffer
        self.pattern = pattern
        self.start = start

    def __call__(self, value: Any) -> bool:
        return self.pattern.search(self.buffer.read_since(self.start)) is not None

    def __repr__(self) -> str:
        return f"<match {self.pattern.pattern!r} from {self.start}>"


def expect(
    text: str,
    pattern: str | re.Pattern[str],
    buffer: OutputBuffer,
    retries: int = 0,
) -> Generator[Any, Any, str | None]:
    """Send ``text`` and wait until the output that follows matches ``pattern``.

    The output is read from ``buffer``, starting where it stood when the
    generator started. On timeout, ``text`` is sent again up to
    ``retries`` times.

    Returns:
        The output written since the start, or None if every attempt
        timed out.
    """
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    matcher = _TranscriptMatcher(buffer, compiled, buffer.mark())

    for attempt in range(retries + 1):
        value = yield WaitUntil(text, matcher)
        # The transcript may match even when the resume was a timeout.
        if value is not TIMEOUT or matcher(value):
            return buffer.read_since(matcher.start)
        logger.debug(
            "No match for %r after sending %r (attempt %d/%d)",
            compiled.pattern,
            text,
            attempt + 1,
            retries + 1,
        )
    logger.warning("Gave up waiting for %r", compiled.pattern)
    return None


def wait_for(
    pattern: str | re.Pattern[str],
    buffer: OutputBuffer,
    start: int | None = None,
) -> Generator[Any, Any, str | None]:
    """Wait, without sending anything, until the output matches ``pattern``.

    ``start`` is the transcript offset to search from; by default, where
    the buffer stood when the generator started.

    Returns:
        The output since ``start``, or None on timeout.
    """
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    if start is None:
        start = buffer.mark()
    value = None
    while compiled.search(buffer.read_since(start)) is None:
        if value is TIMEOUT:
            logger.debug("Timed out waiting for %r", compiled.pattern)
            return None
        value = yield KEEP_WAITING
    return buffer.read_since(start)
