"""termqueue — serialized, multi-step interactions with a terminal subprocess."""

__version__ = "0.1.0"
