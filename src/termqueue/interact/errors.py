"""Error types for the interaction queue."""

from typing import Any


class InteractionError(Exception):
    """Base exception for interaction queue errors."""

    pass


class InvalidYieldError(InteractionError):
    """Raised when a generator yields a value the queue does not understand."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"invalid yielded value: {value!r}")
        self.value = value


class InteractionClosedError(InteractionError):
    """Raised when a closed interaction is resumed."""

    pass


__all__ = [
    "InteractionClosedError",
    "InteractionError",
    "InvalidYieldError",
]
