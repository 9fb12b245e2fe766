"""
Smoke tests for package structure and availability.

These tests verify that the package is importable and exposes the entry
points declared in pyproject.toml.
"""

from __future__ import annotations

import importlib

from contextmeta import __version__


def test_package_importable() -> None:
    """Ensure the top-level package can be imported."""
    mod = importlib.import_module("contextmeta")
    assert mod is not None


def test_version_is_set() -> None:
    """Ensure the package exposes a valid version string."""
    assert isinstance(__version__, str)
    assert len(__version__) > 0


def test_cli_module_exposes_app() -> None:
    """The console script `contextmeta.cli:app` must resolve to a Typer app."""
    cli = importlib.import_module("contextmeta.cli")
    assert hasattr(cli, "app"), "contextmeta.cli must expose an 'app' Typer object."
