"""Tests for the settings loader and logger factory.

These tests verify:
1) Importing the module-level `settings` yields a `Settings` instance.
2) Environment variables override defaults after clearing the loader cache.
3) `get_logger()` respects the configured LOG_LEVEL.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from contextmeta.core.settings import (
    DEFAULT_STACK,
    Settings,
    get_logger,
    load_settings,
    settings,
)


def test_settings_instance_type() -> None:
    """`settings` should be an instance of the typed `Settings` model."""
    assert isinstance(settings, Settings)


def test_defaults(monkeypatch: Any) -> None:
    """Without overrides the store knobs use their documented defaults."""
    for name in (
        "CONTEXTMETA_HOME",
        "CONTEXTMETA_COMPACT_THRESHOLD",
        "CONTEXTMETA_HISTORY_LIMIT",
        "CONTEXTMETA_DEFAULT_STACK",
    ):
        monkeypatch.delenv(name, raising=False)
    load_settings.cache_clear()
    s = load_settings()

    assert s.compact_threshold == 50
    assert s.history_limit == 10
    assert s.default_stack == DEFAULT_STACK
    assert s.home == Path.home() / ".config" / "opencode"
    load_settings.cache_clear()


def test_env_overrides_with_cache_clear(monkeypatch: Any, tmp_path: Path) -> None:
    """Changing env vars should take effect after `load_settings.cache_clear()`."""
    monkeypatch.setenv("CONTEXTMETA_ENV", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("CONTEXTMETA_HOME", str(tmp_path))
    monkeypatch.setenv("CONTEXTMETA_COMPACT_THRESHOLD", "5")

    load_settings.cache_clear()
    s = load_settings()

    assert s.environment == "test" and s.is_test
    assert s.log_level == "DEBUG"
    assert s.home == tmp_path
    assert s.compact_threshold == 5
    load_settings.cache_clear()


def test_get_logger_respects_level(monkeypatch: Any) -> None:
    """`get_logger()` applies the numeric level derived from `LOG_LEVEL`."""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    load_settings.cache_clear()

    logger = get_logger("contextmeta.tests.settings")

    assert logger.level == logging.ERROR
    assert logger.handlers, "Expected a handler to be attached."
    load_settings.cache_clear()
