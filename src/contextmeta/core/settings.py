"""Centralized configuration for contextmeta using Pydantic Settings (v2).

This module exposes a cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files in the working directory: .env, .env.local

Only the location and tuning knobs of the store are configured here. The file
names inside the context directory are fixed (see ``snapshot_store`` and
``journal``) because external readers depend on them.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_STACK = "Node.js + npm + Vite + TypeScript + TanStack"


def _default_home() -> Path:
    """Return the default context directory (``~/.config/opencode``)."""
    return Path.home() / ".config" / "opencode"


class Settings(BaseSettings):
    """Typed configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `CONTEXTMETA_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    home : Path
        Directory holding the snapshot and journal files; `CONTEXTMETA_HOME`.
    compact_threshold : int
        Journal length that triggers compaction on update;
        `CONTEXTMETA_COMPACT_THRESHOLD`.
    history_limit : int
        Maximum number of `sessionHistory` entries kept;
        `CONTEXTMETA_HISTORY_LIMIT`.
    default_stack : str
        Stack description used when a snapshot has to be created or repaired;
        `CONTEXTMETA_DEFAULT_STACK`.
    """

    environment: EnvName = Field(default="dev", alias="CONTEXTMETA_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    home: Path = Field(default_factory=_default_home, alias="CONTEXTMETA_HOME")
    compact_threshold: int = Field(default=50, ge=1, alias="CONTEXTMETA_COMPACT_THRESHOLD")
    history_limit: int = Field(default=10, ge=1, alias="CONTEXTMETA_HISTORY_LIMIT")
    default_stack: str = Field(
        default=DEFAULT_STACK, min_length=1, alias="CONTEXTMETA_DEFAULT_STACK"
    )

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    Tests force a rebuild via `load_settings.cache_clear()` after mutating
    `os.environ`.
    """
    os.environ.setdefault("CONTEXTMETA_ENV", "dev")
    return Settings()


settings: Settings = load_settings()


def get_logger(name: str = "contextmeta") -> logging.Logger:
    """Return a process-global logger configured to the current log level.

    Records go to stderr through a rich handler whose console resolves
    `sys.stderr` at write time, so redirected streams (CLI runners, pytest
    capture) receive them.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
