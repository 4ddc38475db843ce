"""Interaction queue — serializes generators onto one subprocess.

The queue owns the subprocess handle, the generator currently driving
I/O, a FIFO of generators waiting their turn, the accept predicate of a
pending :class:`~termqueue.interact.steps.WaitUntil`, and two timers:

* the *timeout*, armed whenever a generator is left waiting, which
  resumes it with :data:`~termqueue.interact.steps.TIMEOUT`;
* the *debounce* (stable delay), armed by :meth:`InteractionQueue.resume_later`,
  which collapses a burst of output into one resume.

When the timeout fires while the debounce is still counting down, the
buffered output is delivered at once instead of ``TIMEOUT``.

Everything runs on the event loop thread. Nothing here blocks.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Generator
from typing import Any, Callable, Protocol, runtime_checkable

from termqueue.config import QueueConfig
from termqueue.interact.errors import InvalidYieldError
from termqueue.interact.steps import (
    FIRE_AND_FORGET_ACK,
    KEEP_WAITING,
    TIMEOUT,
    FireAndForget,
    Send,
    WaitUntil,
)
from termqueue.interact.timers import Timer

logger = logging.getLogger(__name__)


@runtime_checkable
class ProcessSink(Protocol):
    """What the queue needs from the subprocess."""

    @property
    def alive(self) -> bool: ...

    def send(self, data: str) -> None:
        """Write ``data`` to the subprocess."""
        ...

    def read_pending(self) -> str | None:
        """Return output already available but not yet delivered, if any."""
        ...


class InteractionQueue:
    """Runs generators one at a time against a single subprocess.

    Usage:
        queue = InteractionQueue(session)
        queue.enqueue(send_string("ls\\n"))
        # from the output handler:
        queue.resume_later(text)

    Generators complete in the order they were enqueued, and only the
    current one talks to the subprocess. See :mod:`termqueue.interact.steps`
    for the values generators yield and receive.
    """

    def __init__(
        self,
        process: ProcessSink,
        config: QueueConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.process = process
        self.config = config or QueueConfig()
        self._current: Generator[Any, Any, Any] | None = None
        # The current generator has not been started yet.
        self._fresh: bool = False
        self._pending: deque[Generator[Any, Any, Any]] = deque()
        self._accept: Callable[[Any], bool] | None = None
        self._timeout_timer: Timer[InteractionQueue] = Timer(
            self, InteractionQueue._on_timeout, loop
        )
        self._debounce_timer: Timer[InteractionQueue] = Timer(
            self, InteractionQueue.resume, loop
        )
        self._start_timer: Timer[InteractionQueue] = Timer(
            self, InteractionQueue._start_promoted, loop
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def idle(self) -> bool:
        return self._current is None

    @property
    def current(self) -> Generator[Any, Any, Any] | None:
        return self._current

    @property
    def pending(self) -> tuple[Generator[Any, Any, Any], ...]:
        return tuple(self._pending)

    @property
    def accepting(self) -> bool:
        """True while a ``WaitUntil`` predicate gates the current generator."""
        return self._accept is not None

    @property
    def timeout_armed(self) -> bool:
        return self._timeout_timer.armed

    @property
    def debounce_armed(self) -> bool:
        return self._debounce_timer.armed

    def __len__(self) -> int:
        return len(self._pending) + (0 if self._current is None else 1)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, generator: Generator[Any, Any, Any] | None) -> None:
        """Add ``generator`` to the queue, starting it if the queue is idle."""
        if generator is None:
            return
        if self._current is not None:
            self._pending.append(generator)
            return
        self._current = generator
        self._fresh = True
        self.resume()

    def resume(self, value: Any = None) -> None:
        """Resume the current generator with ``value``.

        Called by the I/O layer when the subprocess produced output, and by
        the timers. Drives generators until one is left waiting or the
        queue is empty.

        Raises:
            InvalidYieldError: the current generator yielded something the
                queue does not understand. The generator is closed and
                dropped before the error propagates, and the next pending
                generator is started from the event loop.
        """
        self._timeout_timer.cancel()
        try:
            self._drive(value)
        finally:
            if self._current is not None:
                self._timeout_timer.arm(self.config.timeout)

    def resume_later(self, value: Any = None) -> None:
        """Resume with ``value`` once no other call arrived for ``stable_delay``.

        Each call supersedes the previous one; only the last value is
        delivered.
        """
        self._debounce_timer.arm(self.config.stable_delay, value)

    def cancel(self) -> None:
        """Close every generator and disarm all timers.

        Cleanups run before this returns. The queue stays usable.
        """
        self._accept = None
        self._fresh = False
        self._timeout_timer.cancel()
        self._debounce_timer.cancel()
        self._start_timer.cancel()

        closing: list[Generator[Any, Any, Any]] = []
        if self._current is not None:
            closing.append(self._current)
            self._current = None
        closing.extend(self._pending)
        self._pending.clear()

        if closing:
            logger.debug("Cancelling %d interaction(s)", len(closing))
        for generator in closing:
            self._close(generator)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def _drive(self, value: Any) -> None:
        while self._current is not None:
            if self._fresh:
                self._fresh = False
                value = None
            elif self._accept is not None and not self._accepts(value):
                return

            try:
                waiting = self._step(value)
            except Exception:
                self._drop_current()
                raise
            if waiting:
                return

            logger.debug("Interaction finished: %r", self._current)
            self._current = self._pending.popleft() if self._pending else None
            self._fresh = self._current is not None

    def _accepts(self, value: Any) -> bool:
        accept = self._accept
        assert accept is not None
        if value is TIMEOUT:
            # Let the generator handle the timeout itself.
            self._accept = None
            return True
        try:
            accepted = bool(accept(value))
        except Exception:
            logger.exception("Accept predicate %r failed", accept)
            self._accept = None
            return False
        if accepted:
            self._accept = None
        return accepted

    def _step(self, value: Any) -> bool:
        """Resume the current generator until it waits (True) or ends (False)."""
        generator = self._current
        assert generator is not None
        while True:
            try:
                result = generator.send(value)
            except StopIteration:
                return False

            if result is KEEP_WAITING:
                return True
            if isinstance(result, FireAndForget) and result.text:
                self._send(result.text)
                value = FIRE_AND_FORGET_ACK
                continue
            if (
                isinstance(result, WaitUntil)
                and result.text
                and callable(result.predicate)
            ):
                self._accept = result.predicate
                self._send(result.text)
                return True

            text = result.text if isinstance(result, Send) else result
            if isinstance(text, str) and text:
                self._send(text)
                return True
            raise InvalidYieldError(result)

    def _drop_current(self) -> None:
        generator, self._current = self._current, None
        self._accept = None
        if generator is not None:
            self._close(generator)
        if self._pending:
            self._current = self._pending.popleft()
            self._fresh = True
            # The caller gets the error; the next generator starts on its own.
            self._start_timer.arm(0)

    def _close(self, generator: Generator[Any, Any, Any]) -> None:
        try:
            generator.close()
        except Exception:
            logger.exception("Error closing interaction %r", generator)

    def _send(self, text: str) -> None:
        if not self.process.alive:
            logger.debug("Process is gone, dropping send: %r", text)
            return
        logger.debug("send: %r", text)
        try:
            self.process.send(text)
        except OSError as e:
            logger.warning("Send to process failed: %s", e)

    def _start_promoted(self) -> None:
        if self._current is not None and self._fresh:
            self.resume()

    def _on_timeout(self) -> None:
        if self._current is None:
            return
        # Output already received but still settling counts as a response.
        if self._debounce_timer.armed:
            logger.debug("Timeout raced with buffered output, delivering it")
            self._debounce_timer.flush()
            return
        # Output may have arrived without being delivered yet.
        output = self.process.read_pending() if self.process.alive else None
        if output:
            logger.debug("Timeout raced with output, resuming with it")
            self.resume(output)
        else:
            logger.debug("Timed out waiting for a response")
            self.resume(TIMEOUT)
