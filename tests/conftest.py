# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from llvmenv.paths import AppPaths


@pytest.fixture
def app_paths(tmp_path: Path) -> AppPaths:
    """Return config/cache/data roots isolated beneath ``tmp_path``."""
    return AppPaths.under(tmp_path / "llvmenv")


@pytest.fixture
def no_accelerators(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend neither ccache nor lld is installed."""
    monkeypatch.setattr("llvmenv.entry.which", lambda executable: None)


@pytest.fixture(autouse=True)
def default_emoji(monkeypatch: pytest.MonkeyPatch) -> None:
    """Undo any ``--no-emoji`` left behind by a CLI invocation."""
    monkeypatch.setattr("llvmenv.logging._EMOJI", True)
