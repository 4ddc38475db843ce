"""Terminal — a PTY session together with the queue that drives it."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Generator
from typing import Any

from termqueue.config import QueueConfig, TermQueueConfig
from termqueue.interact import (
    DONE,
    InteractionAdapter,
    InteractionQueue,
    expect,
    interact,
    send_string,
    wait_for,
)
from termqueue.pty.buffer import OutputBuffer
from termqueue.pty.session import PTYSession

logger = logging.getLogger(__name__)


class Terminal:
    """Owns one subprocess connection and its interaction queue.

    Output from the session is routed through the queue's debounce timer;
    when the process exits, the queue is cancelled so no interaction is
    left waiting on a dead connection.
    """

    def __init__(self, session: PTYSession, config: QueueConfig | None = None) -> None:
        self.session = session
        self.queue = InteractionQueue(session, config)
        session.set_on_output(self._on_output)
        session.set_on_exit(self._on_exit)

    @classmethod
    async def spawn(
        cls,
        command: list[str],
        config: TermQueueConfig | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> Terminal:
        """Start ``command`` in a new PTY and attach a queue to it."""
        config = config or TermQueueConfig()
        session = PTYSession(
            command=command,
            cwd=cwd or ".",
            env=env or {},
            config=config.pty,
        )
        await session.start()
        return cls(session, config.queue)

    @property
    def buffer(self) -> OutputBuffer:
        return self.session.buffer

    @property
    def alive(self) -> bool:
        return self.session.alive

    def _on_output(self, session: PTYSession, text: str) -> None:
        self.queue.resume_later(text)

    def _on_exit(self, session: PTYSession, exit_code: int | None) -> None:
        if not self.queue.idle:
            logger.info(
                "Session %s exited (code=%s), cancelling %d interaction(s)",
                session.id,
                exit_code,
                len(self.queue),
            )
        self.queue.cancel()

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    def submit(self, generator: Generator[Any, Any, Any]) -> None:
        """Queue ``generator`` without waiting for it."""
        self.queue.enqueue(generator)

    async def run(self, generator: Generator[Any, Any, Any]) -> Any:
        """Queue ``generator`` and wait for its return value.

        Raises:
            asyncio.CancelledError: the queue was cancelled, the process
                exited, or the generator yielded an invalid value before
                it finished.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.queue.enqueue(_resolving(generator, future))
        return await future

    async def send(self, text: str, fire_and_forget: bool = False) -> None:
        """Send ``text``; unless ``fire_and_forget``, wait for a response or timeout."""
        await self.run(send_string(text, fire_and_forget=fire_and_forget))

    async def expect(
        self, text: str, pattern: str | re.Pattern[str], retries: int = 0
    ) -> str | None:
        """Send ``text`` and return the output once it matches ``pattern``.

        Returns None if every attempt timed out.
        """
        return await self.run(expect(text, pattern, self.buffer, retries=retries))

    async def wait_for(
        self, pattern: str | re.Pattern[str], since: int | None = None
    ) -> str | None:
        """Wait until the output since ``since`` matches ``pattern``, sending nothing."""
        return await self.run(wait_for(pattern, self.buffer, start=since))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Abort every queued interaction. The terminal stays usable."""
        self.queue.cancel()

    async def close(self) -> None:
        """Cancel all interactions and kill the process."""
        self.queue.cancel()
        self.session.kill()

    async def __aenter__(self) -> Terminal:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def _resolving(
    generator: Generator[Any, Any, Any], future: asyncio.Future[Any]
) -> InteractionAdapter:
    """Wrap ``generator`` so its outcome lands on ``future``.

    The cleanup cancels the future, so a caller waiting on a generator
    that is cancelled before it ever ran is released too.
    """

    def step(value: Any) -> Any:
        try:
            return generator.send(value)
        except StopIteration as stop:
            if not future.done():
                future.set_result(stop.value)
            return DONE
        except Exception as e:
            if not future.done():
                future.set_exception(e)
            raise

    def cleanup() -> None:
        generator.close()
        if not future.done():
            future.cancel()

    return interact(step, cleanup)
