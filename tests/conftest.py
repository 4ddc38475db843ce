"""Shared fixtures for termqueue tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from termqueue.config import QueueConfig
from termqueue.interact import InteractionQueue


class FakeProcess:
    """In-memory ProcessSink that records everything sent to it."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.alive = True
        self.pending_output: str | None = None
        self.read_pending_calls = 0

    def send(self, data: str) -> None:
        self.sent.append(data)

    def read_pending(self) -> str | None:
        self.read_pending_calls += 1
        output, self.pending_output = self.pending_output, None
        return output


@pytest.fixture
def process() -> FakeProcess:
    return FakeProcess()


@pytest.fixture
def queue(process: FakeProcess) -> Iterator[InteractionQueue]:
    """A queue whose timers never fire during a test."""
    q = InteractionQueue(process, QueueConfig(timeout=60.0, stable_delay=60.0))
    yield q
    q.cancel()


@pytest.fixture
def fast_queue(process: FakeProcess) -> Iterator[InteractionQueue]:
    """A queue with short timers, for timeout and debounce tests."""
    q = InteractionQueue(process, QueueConfig(timeout=0.1, stable_delay=0.03))
    yield q
    q.cancel()
