"""Values exchanged between the queue and the generators it drives.

A generator driven by :class:`~termqueue.interact.core.InteractionQueue`
yields one of:

* a non-empty ``str`` or :class:`Send`: send the text, then wait for any
  response;
* :class:`FireAndForget`: send the text and continue immediately; the
  generator is resumed at once with :data:`FIRE_AND_FORGET_ACK`;
* :class:`WaitUntil`: send the text, then wait until ``predicate``
  accepts a resume value;
* :data:`KEEP_WAITING`: send nothing and wait for the next resume.

It is resumed with whatever the I/O layer passed to ``resume()``, with
:data:`TIMEOUT` when nothing arrived in time, or with
:data:`FIRE_AND_FORGET_ACK` after a fire-and-forget send.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable


class Signal(enum.Enum):
    """Sentinels used by the queue protocol."""

    KEEP_WAITING = "keep_waiting"
    TIMEOUT = "timeout"
    FIRE_AND_FORGET_ACK = "fire_and_forget_ack"
    DONE = "done"

    def __repr__(self) -> str:
        return f"<{self.name}>"


KEEP_WAITING = Signal.KEEP_WAITING
TIMEOUT = Signal.TIMEOUT
FIRE_AND_FORGET_ACK = Signal.FIRE_AND_FORGET_ACK
# Returned by an interaction callback once it has nothing left to do.
DONE = Signal.DONE


@dataclass(frozen=True)
class Send:
    """Send ``text`` and wait for the next response."""

    text: str


@dataclass(frozen=True)
class FireAndForget:
    """Send ``text`` without waiting for a response."""

    text: str


@dataclass(frozen=True)
class WaitUntil:
    """Send ``text`` and wait until ``predicate(value)`` is true."""

    text: str
    predicate: Callable[[Any], bool]


Step = str | Send | FireAndForget | WaitUntil | Signal
