"""Configuration — Pydantic models for termqueue settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


class QueueConfig(BaseModel):
    """Timing of the interaction queue.

    ``timeout`` bounds how long the queue waits for the subprocess to
    answer a send before resuming the waiting interaction with
    ``TIMEOUT``. ``stable_delay`` is the quiet period used to coalesce
    bursts of output into a single resume.
    """

    model_config = ConfigDict(validate_assignment=True)

    timeout: float = Field(default=0.5, gt=0, description="Seconds to wait for a response")
    stable_delay: float = Field(
        default=0.1, gt=0, description="Quiet period before output resumes the queue"
    )


class PTYConfig(BaseModel):
    """Pseudo-terminal process settings."""

    term: str = Field(default="dumb", description="TERM exported to the subprocess")
    read_size: int = Field(default=4096, gt=0)
    buffer_chars: int = Field(
        default=1_000_000, gt=0, description="Characters of transcript to retain"
    )
    kill_wait: float = Field(
        default=2.0, ge=0, description="Seconds to wait for a killed process to be reaped"
    )


class TermQueueConfig(BaseModel):
    """Top-level termqueue configuration."""

    queue: QueueConfig = Field(default_factory=QueueConfig)
    pty: PTYConfig = Field(default_factory=PTYConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> TermQueueConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            TERMQUEUE_TIMEOUT        - Override the response timeout (seconds)
            TERMQUEUE_STABLE_DELAY   - Override the output debounce delay (seconds)
            TERMQUEUE_TERM           - Override TERM for spawned processes
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        queue = config_data.get("queue", {})

        env_timeout = os.environ.get("TERMQUEUE_TIMEOUT")
        if env_timeout:
            queue["timeout"] = float(env_timeout)

        env_stable_delay = os.environ.get("TERMQUEUE_STABLE_DELAY")
        if env_stable_delay:
            queue["stable_delay"] = float(env_stable_delay)

        if queue:
            config_data["queue"] = queue

        env_term = os.environ.get("TERMQUEUE_TERM")
        if env_term:
            config_data.setdefault("pty", {})["term"] = env_term

        return cls.model_validate(config_data)
