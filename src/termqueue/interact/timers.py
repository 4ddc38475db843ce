"""Single-shot, re-armable timers on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Timer(Generic[T]):
    """At most one pending call of ``callback(owner, *args)``.

    Arming cancels any call still pending. The owner is held through a
    weak reference; if it is gone when the timer fires, nothing happens.
    Cancelling is idempotent.
    """

    def __init__(
        self,
        owner: T,
        callback: Callable[..., Any],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._owner = weakref.ref(owner)
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._args: tuple[Any, ...] = ()

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, *args: Any) -> None:
        """(Re)start the timer so it fires ``delay`` seconds from now."""
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._args = args
        self._handle = loop.call_later(delay, self._fire)

    def flush(self) -> bool:
        """Fire a pending call right now. Returns False if none was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._args = ()

    def _fire(self) -> None:
        args, self._args = self._args, ()
        self._handle = None
        owner = self._owner()
        if owner is None:
            logger.debug("Timer owner is gone, dropping %r", self._callback)
            return
        self._callback(owner, *args)
