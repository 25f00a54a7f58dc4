from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Literal

from workspace_runner.env import (
    COMPILE_CACHE_SIZE_ENV,
    DEFAULT_TIMEOUT_ENV,
    LOG_LEVEL_ENV,
    PYTHON_ENV,
)


@dataclass
class RunnerConfig:
    """Configuration for workspace runs.

    All fields have default values to make configuration optional.
    """

    default_timeout_seconds: float = field(default=30.0)
    python_executable: str = field(default=sys.executable)
    kill_grace_seconds: float = field(default=2.0)
    encoding: str = field(default="utf-8")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = field(default="INFO")
    compile_cache_size: int = field(default=256)
    """Compile outputs kept by the shared compiler registry. 0 disables caching."""

    def __post_init__(self):
        if self.default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be > 0")
        if self.kill_grace_seconds < 0:
            raise ValueError("kill_grace_seconds must be >= 0")
        if not self.python_executable:
            raise ValueError("python_executable must not be empty")
        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR"]:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        if self.compile_cache_size < 0:
            raise ValueError("compile_cache_size must be >= 0")

    @classmethod
    def from_env(cls) -> "RunnerConfig":
        """Build a config from WSR_* environment variables, using defaults for unset ones."""
        kwargs = {}
        if os.environ.get(DEFAULT_TIMEOUT_ENV):
            kwargs["default_timeout_seconds"] = float(os.environ[DEFAULT_TIMEOUT_ENV])
        if os.environ.get(PYTHON_ENV):
            kwargs["python_executable"] = os.environ[PYTHON_ENV]
        if os.environ.get(LOG_LEVEL_ENV):
            kwargs["log_level"] = os.environ[LOG_LEVEL_ENV].upper()
        if os.environ.get(COMPILE_CACHE_SIZE_ENV):
            kwargs["compile_cache_size"] = int(os.environ[COMPILE_CACHE_SIZE_ENV])
        return cls(**kwargs)
