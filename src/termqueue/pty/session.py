"""PTY session — an interactive subprocess on a pseudo-terminal."""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import os
import pty
import signal
import subprocess
import uuid
from dataclasses import dataclass, field
from typing import Callable

from termqueue.config import PTYConfig
from termqueue.pty.buffer import OutputBuffer
from termqueue.pty.text import clean_output

logger = logging.getLogger(__name__)


class PTYStatus(enum.Enum):
    """Lifecycle states for a PTY session."""

    STARTING = "starting"
    RUNNING = "running"
    KILLING = "killing"  # Kill requested, waiting for process to die
    KILLED = "killed"  # Killed by us (SIGKILL)
    EXITED = "exited"  # Process exited on its own


@dataclass
class PTYSession:
    """A subprocess attached to a pseudo-terminal.

    - Process group isolation (start_new_session) for safe tree-killing
    - Non-blocking reads and writes on the event loop (``add_reader``/``add_writer``)
    - Cleaned transcript in :attr:`buffer`
    - Output and exit callbacks

    Implements :class:`~termqueue.interact.core.ProcessSink`, so it can
    back an :class:`~termqueue.interact.core.InteractionQueue` directly.
    """

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    command: list[str] = field(default_factory=list)
    cwd: str = field(default_factory=os.getcwd)
    env: dict[str, str] = field(default_factory=dict)
    config: PTYConfig = field(default_factory=PTYConfig)

    # Internal state
    buffer: OutputBuffer = field(init=False)
    _master_fd: int = field(default=-1, init=False)
    _proc: subprocess.Popen | None = field(default=None, init=False)
    _pid: int = field(default=0, init=False)
    _pgid: int = field(default=0, init=False)
    _input: bytearray = field(default_factory=bytearray, init=False)
    _writing: bool = field(default=False, init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _status: PTYStatus = field(default=PTYStatus.STARTING, init=False)
    _on_output: Callable[[PTYSession, str], None] | None = field(
        default=None, init=False
    )
    _on_exit: Callable[[PTYSession, int | None], None] | None = field(
        default=None, init=False
    )

    def __post_init__(self) -> None:
        self.buffer = OutputBuffer(max_chars=self.config.buffer_chars)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def set_on_output(self, callback: Callable[[PTYSession, str], None]) -> None:
        """Set a callback invoked with each chunk of cleaned output."""
        self._on_output = callback

    def set_on_exit(self, callback: Callable[[PTYSession, int | None], None]) -> None:
        """Set a callback to be invoked when the process exits on its own.

        The callback receives (session, exit_code). It is not called when
        the process is killed via kill().
        """
        self._on_exit = callback

    async def start(self) -> None:
        """Spawn the process in a new PTY with its own process group."""
        master_fd, slave_fd = pty.openpty()
        self._master_fd = master_fd

        env = {**os.environ, **self.env}
        env["TERM"] = self.config.term
        env.pop("PROMPT_COMMAND", None)

        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,  # Creates new process group
                env=env,
                cwd=self.cwd,
            )
        except OSError:
            os.close(master_fd)
            self._master_fd = -1
            raise
        finally:
            os.close(slave_fd)

        self._pid = self._proc.pid
        self._pgid = os.getpgid(self._pid)
        self._status = PTYStatus.RUNNING

        os.set_blocking(master_fd, False)
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(master_fd, self._on_readable)

        logger.info(
            "PTY session %s started: pid=%d pgid=%d cmd=%s",
            self.id,
            self._pid,
            self._pgid,
            " ".join(self.command),
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _read(self) -> bytes | None:
        """One non-blocking read. None if nothing is available, b"" on EOF."""
        try:
            return os.read(self._master_fd, self.config.read_size)
        except BlockingIOError:
            return None
        except OSError:
            # Linux reports EIO once the slave side is closed.
            return b""

    def _consume(self, data: bytes) -> str:
        text = clean_output(self._decoder.decode(data))
        self.buffer.append(text)
        return text

    def _on_readable(self) -> None:
        data = self._read()
        if data is None:
            return
        if not data:
            self._handle_eof()
            return
        text = self._consume(data)
        if text and self._on_output:
            self._on_output(self, text)

    def read_pending(self) -> str | None:
        """Read output that is available but has not been delivered yet.

        The text is added to the transcript but not passed to the output
        callback.
        """
        if not self.alive:
            return None
        data = self._read()
        if not data:
            return None
        return self._consume(data) or None

    def _detach(self) -> None:
        if self._loop is not None and self._master_fd >= 0:
            self._loop.remove_reader(self._master_fd)
        if self._input:
            logger.debug(
                "PTY session %s dropping %d unsent bytes", self.id, len(self._input)
            )
        self._detach_writer()

    def _handle_eof(self) -> None:
        self._detach()
        # Only transition to EXITED if we weren't already killing
        if self._status != PTYStatus.RUNNING:
            return
        exit_code = self._proc.poll() if self._proc else None
        self._status = PTYStatus.EXITED
        logger.info("PTY session %s exited (code=%s)", self.id, exit_code)
        if self._on_exit:
            try:
                self._on_exit(self, exit_code)
            except Exception:
                logger.exception("Error in on_exit callback for session %s", self.id)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def send(self, data: str) -> None:
        """Write ``data`` to the PTY as-is. A no-op once the process is gone.

        Never blocks: whatever the PTY cannot take now is written from the
        event loop once it becomes writable, in order.

        Raises:
            OSError: the write failed for a reason other than a full PTY.
        """
        if not self.alive:
            logger.debug("PTY session %s is not running, dropping input", self.id)
            return
        self._input += data.encode()
        if self._writing:
            return
        try:
            self._flush_input()
        except OSError:
            self._input.clear()
            raise

    def _flush_input(self) -> None:
        while self._input:
            try:
                written = os.write(self._master_fd, self._input)
            except BlockingIOError:
                if not self._writing and self._loop is not None:
                    self._loop.add_writer(self._master_fd, self._on_writable)
                    self._writing = True
                return
            del self._input[:written]
        if self._writing and self._loop is not None:
            self._loop.remove_writer(self._master_fd)
        self._writing = False

    def _on_writable(self) -> None:
        try:
            self._flush_input()
        except OSError as e:
            logger.warning("Write to PTY session %s failed: %s", self.id, e)
            self._detach_writer()

    def _detach_writer(self) -> None:
        if self._writing and self._loop is not None and self._master_fd >= 0:
            self._loop.remove_writer(self._master_fd)
        self._writing = False
        self._input.clear()

    @property
    def input_backlog(self) -> int:
        """Bytes accepted by :meth:`send` but not yet written to the PTY."""
        return len(self._input)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def kill(self) -> None:
        """Kill the entire process tree and release the PTY."""
        if self._status not in (PTYStatus.RUNNING, PTYStatus.KILLING):
            if self._proc is not None:
                self._proc.poll()
            self._close_master()
            return

        self._status = PTYStatus.KILLING
        self._detach()
        try:
            os.killpg(self._pgid, signal.SIGKILL)
            logger.info("Killed PTY session %s (pgid=%d)", self.id, self._pgid)
        except ProcessLookupError:
            logger.debug("Process group already gone: %d", self._pgid)
        except OSError as e:
            logger.warning("Error killing PTY session %s: %s", self.id, e)

        # Wait for process to be reaped (avoids zombies)
        if self._proc is not None:
            try:
                self._proc.wait(timeout=self.config.kill_wait)
            except subprocess.TimeoutExpired:
                logger.warning("PTY session %s did not exit after SIGKILL", self.id)

        self._close_master()
        self._status = PTYStatus.KILLED

    def _close_master(self) -> None:
        if self._master_fd < 0:
            return
        try:
            os.close(self._master_fd)
        except OSError:
            logger.debug("Master fd of session %s already closed", self.id)
        self._master_fd = -1

    @property
    def alive(self) -> bool:
        return self._status == PTYStatus.RUNNING

    @property
    def status(self) -> PTYStatus:
        return self._status

    async def wait_for_exit(self, timeout: float = 10.0) -> int | None:
        """Wait for the process to exit. Returns exit code or None on timeout."""
        if self._proc is None:
            return -1
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            ret = self._proc.poll()
            if ret is not None:
                return ret
            await asyncio.sleep(0.05)
        return None
