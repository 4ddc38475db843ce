"""Interaction queue — serialized, multi-step exchanges with one subprocess.

Generators (native, or adapted interactions) are queued and driven one at
a time. Each yields text to send and how to wait for the answer; the
queue sends, arms a timeout, and resumes the generator when output (or
the timeout) arrives.
"""

from termqueue.interact.core import InteractionQueue, ProcessSink
from termqueue.interact.errors import (
    InteractionClosedError,
    InteractionError,
    InvalidYieldError,
)
from termqueue.interact.helpers import expect, interact, send_string, wait_for
from termqueue.interact.interaction import Interaction, InteractionAdapter
from termqueue.interact.steps import (
    DONE,
    FIRE_AND_FORGET_ACK,
    KEEP_WAITING,
    TIMEOUT,
    FireAndForget,
    Send,
    Signal,
    WaitUntil,
)
from termqueue.interact.timers import Timer

__all__ = [
    "DONE",
    "FIRE_AND_FORGET_ACK",
    "KEEP_WAITING",
    "TIMEOUT",
    "FireAndForget",
    "Interaction",
    "InteractionAdapter",
    "InteractionClosedError",
    "InteractionError",
    "InteractionQueue",
    "InvalidYieldError",
    "ProcessSink",
    "Send",
    "Signal",
    "Timer",
    "WaitUntil",
    "expect",
    "interact",
    "send_string",
    "wait_for",
]
