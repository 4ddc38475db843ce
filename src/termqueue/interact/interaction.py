"""Interactions — resumable callbacks driven through the generator protocol.

An :class:`Interaction` is a stateful callback plus an optional cleanup.
Each resume calls ``callback(value)``; the callback returns the next step
for the queue (see :mod:`termqueue.interact.steps`) or :data:`DONE`.

The callback runs inside the interaction's own :class:`contextvars.Context`,
so any :class:`~contextvars.ContextVar` it sets is still set on the next
resume. Cleanup runs inside the snapshot taken when the interaction was
created, whatever the callback changed since.

:class:`InteractionAdapter` exposes an interaction as a
:class:`collections.abc.Generator`, which is all the queue knows about.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Generator
from typing import Any, Callable

from termqueue.interact.errors import InteractionClosedError
from termqueue.interact.steps import DONE, Step

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Step]


def _closed_callback(value: Any) -> Step:
    raise InteractionClosedError("interaction resumed after it was closed")


class Interaction:
    """A multi-step exchange expressed as a callback and a cleanup."""

    def __init__(
        self,
        callback: Callback,
        cleanup: Callable[[], None] | None = None,
        context: contextvars.Context | None = None,
    ) -> None:
        self._callback = callback
        self._cleanup = cleanup
        self.initial_context = context if context is not None else contextvars.copy_context()
        self.context = self.initial_context.copy()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def resume(self, value: Any) -> Step:
        """Run the callback with ``value`` inside the saved context."""
        return self.context.run(self._callback, value)

    def close(self) -> None:
        """Run the cleanup once and make further resumes fail.

        Safe to call more than once, and on an interaction that was never
        resumed.
        """
        if self._closed:
            return
        self._closed = True
        self._callback = _closed_callback
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            logger.debug("Running interaction cleanup %r", cleanup)
            self.initial_context.run(cleanup)


class InteractionAdapter(Generator):
    """Drive an :class:`Interaction` like a native generator.

    ``send`` resumes the interaction; when the callback returns
    :data:`DONE` the interaction is closed and ``StopIteration`` is
    raised. ``close`` closes the interaction.
    """

    def __init__(self, interaction: Interaction) -> None:
        self.interaction = interaction

    def send(self, value: Any) -> Step:
        result = self.interaction.resume(value)
        if result is DONE:
            self.interaction.close()
            raise StopIteration
        return result

    def throw(self, typ: Any, val: Any = None, tb: Any = None) -> Step:
        self.close()
        return super().throw(typ, val, tb)

    def close(self) -> None:
        self.interaction.close()

    def __repr__(self) -> str:
        state = "closed" if self.interaction.closed else "open"
        return f"<InteractionAdapter {state} {self.interaction._callback!r}>"
