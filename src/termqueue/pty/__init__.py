"""PTY process I/O — the subprocess side of the interaction queue.

Interactive programs run in a pseudo-terminal with process group
isolation, non-blocking reads on the event loop, a cleaned transcript,
and tree-kill cleanup.
"""

from termqueue.pty.buffer import OutputBuffer
from termqueue.pty.session import PTYSession, PTYStatus
from termqueue.pty.text import clean_output, sanitize_binary_output, strip_ansi

__all__ = [
    "OutputBuffer",
    "PTYSession",
    "PTYStatus",
    "clean_output",
    "sanitize_binary_output",
    "strip_ansi",
]
