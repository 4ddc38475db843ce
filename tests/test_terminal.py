"""Tests for termqueue.terminal.Terminal."""

from __future__ import annotations

import asyncio
import shutil
import sys
from collections.abc import Callable, Generator
from typing import Any

import pytest

from termqueue.config import PTYConfig, QueueConfig, TermQueueConfig
from termqueue.interact import KEEP_WAITING
from termqueue.pty.buffer import OutputBuffer
from termqueue.terminal import Terminal


class FakeSession:
    """Stands in for PTYSession: records input, emits output on demand."""

    def __init__(self) -> None:
        self.id = "fake"
        self.buffer = OutputBuffer()
        self.sent: list[str] = []
        self.alive = True
        self.killed = False
        self._on_output: Callable[[Any, str], None] | None = None
        self._on_exit: Callable[[Any, int | None], None] | None = None

    def set_on_output(self, callback: Callable[[Any, str], None]) -> None:
        self._on_output = callback

    def set_on_exit(self, callback: Callable[[Any, int | None], None]) -> None:
        self._on_exit = callback

    def send(self, data: str) -> None:
        self.sent.append(data)

    def read_pending(self) -> str | None:
        return None

    def kill(self) -> None:
        self.killed = True
        self.alive = False

    def emit(self, text: str) -> None:
        self.buffer.append(text)
        assert self._on_output is not None
        self._on_output(self, text)

    def exit(self, code: int | None) -> None:
        self.alive = False
        assert self._on_exit is not None
        self._on_exit(self, code)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def terminal(session: FakeSession) -> Terminal:
    return Terminal(session, QueueConfig(timeout=1.0, stable_delay=0.01))  # type: ignore[arg-type]


def question() -> Generator[Any, Any, str]:
    answer = yield "question?\n"
    return answer.upper()


# ---------------------------------------------------------------------------
# run / send / expect
# ---------------------------------------------------------------------------


class TestRun:
    async def test_returns_generator_result(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        task = asyncio.create_task(terminal.run(question()))
        await asyncio.sleep(0)
        assert session.sent == ["question?\n"]

        session.emit("answer")
        assert await asyncio.wait_for(task, 1.0) == "ANSWER"
        assert terminal.queue.idle

    async def test_runs_in_order(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        first = asyncio.create_task(terminal.run(question()))
        second = asyncio.create_task(terminal.run(question()))
        await asyncio.sleep(0)
        assert session.sent == ["question?\n"]

        session.emit("one")
        assert await asyncio.wait_for(first, 1.0) == "ONE"
        assert session.sent == ["question?\n", "question?\n"]
        session.emit("two")
        assert await asyncio.wait_for(second, 1.0) == "TWO"

    async def test_generator_error_reaches_caller(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        def broken() -> Generator[Any, Any, None]:
            yield "x"
            raise ValueError("bad reply")

        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda loop, context: None)
        task = asyncio.create_task(terminal.run(broken()))
        await asyncio.sleep(0)
        session.emit("reply")
        with pytest.raises(ValueError, match="bad reply"):
            await asyncio.wait_for(task, 1.0)

    async def test_fire_and_forget_send(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        await asyncio.wait_for(terminal.send("\x03", fire_and_forget=True), 1.0)
        assert session.sent == ["\x03"]
        assert terminal.queue.idle

    async def test_send_waits_for_response(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        task = asyncio.create_task(terminal.send("ls\n"))
        await asyncio.sleep(0)
        assert not task.done()
        session.emit("file\n")
        await asyncio.wait_for(task, 1.0)

    async def test_send_returns_on_timeout(self, session: FakeSession) -> None:
        terminal = Terminal(session, QueueConfig(timeout=0.05, stable_delay=0.01))  # type: ignore[arg-type]
        await asyncio.wait_for(terminal.send("ls\n"), 1.0)
        assert terminal.queue.idle

    async def test_expect(self, terminal: Terminal, session: FakeSession) -> None:
        task = asyncio.create_task(terminal.expect("ls\n", r"\$ $"))
        await asyncio.sleep(0)
        session.emit("ls\nfile.txt\n")
        await asyncio.sleep(0.03)
        assert not task.done()
        session.emit("$ ")
        assert await asyncio.wait_for(task, 1.0) == "ls\nfile.txt\n$ "

    async def test_wait_for_existing_output(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        session.buffer.append("banner\n$ ")
        result = await asyncio.wait_for(terminal.wait_for(r"\$ $", since=0), 1.0)
        assert result == "banner\n$ "
        assert session.sent == []


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_attaches_callbacks(self, terminal: Terminal, session: FakeSession) -> None:
        assert session._on_output is not None
        assert session._on_exit is not None
        assert terminal.buffer is session.buffer
        assert terminal.alive

    async def test_exit_cancels_waiting_interactions(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        def forever() -> Generator[Any, Any, None]:
            while True:
                yield KEEP_WAITING

        task = asyncio.create_task(terminal.run(forever()))
        pending = asyncio.create_task(terminal.run(question()))
        await asyncio.sleep(0)

        session.exit(0)
        with pytest.raises(asyncio.CancelledError):
            await task
        with pytest.raises(asyncio.CancelledError):
            await pending
        assert terminal.queue.idle

    async def test_cancel_keeps_terminal_usable(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        task = asyncio.create_task(terminal.run(question()))
        await asyncio.sleep(0)
        terminal.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        task = asyncio.create_task(terminal.run(question()))
        await asyncio.sleep(0)
        session.emit("again")
        assert await asyncio.wait_for(task, 1.0) == "AGAIN"

    async def test_close_kills_session(
        self, terminal: Terminal, session: FakeSession
    ) -> None:
        terminal.submit(question())
        await terminal.close()
        assert session.killed
        assert terminal.queue.idle

    async def test_context_manager(self, session: FakeSession) -> None:
        async with Terminal(session) as terminal:  # type: ignore[arg-type]
            assert terminal.alive
        assert session.killed


# ---------------------------------------------------------------------------
# Real PTY
# ---------------------------------------------------------------------------


@pytest.mark.skipif(
    sys.platform == "win32" or shutil.which("cat") is None,
    reason="needs a POSIX pty and cat",
)
class TestRealProcess:
    async def test_cat_echoes(self) -> None:
        config = TermQueueConfig(
            queue=QueueConfig(timeout=5.0, stable_delay=0.05),
            pty=PTYConfig(),
        )
        terminal = await Terminal.spawn(["cat"], config)
        try:
            output = await asyncio.wait_for(terminal.expect("hello\n", "hello"), 10.0)
            assert output is not None
            assert "hello" in output
        finally:
            await terminal.close()
        assert not terminal.alive
