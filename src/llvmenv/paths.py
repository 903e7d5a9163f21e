# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Filesystem roots used for configuration, source caches and install prefixes."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .errors import FileSystemError

APP_NAME: Final[str] = "llvmenv"
ENTRY_TOML: Final[str] = "entry.toml"
CONFIG_TOML: Final[str] = "config.toml"
ARCHIVE_CACHE_SUBDIR: Final[str] = "cache"
BUILD_SUBDIR: Final[str] = "build"


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) when missing and return it.

    Raises:
        FileSystemError: If ``path`` exists but is not a directory, or creation fails.
    """

    if path.exists() and not path.is_dir():
        raise FileSystemError(path, "not a directory")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc
    return path


def _platform_roots(env: Mapping[str, str], home: Path) -> tuple[Path, Path, Path]:
    if sys.platform == "win32":
        roaming = Path(env.get("APPDATA", home / "AppData" / "Roaming"))
        local = Path(env.get("LOCALAPPDATA", home / "AppData" / "Local"))
        return roaming, local, roaming
    if sys.platform == "darwin":
        support = home / "Library" / "Application Support"
        return support, home / "Library" / "Caches", support
    return (
        Path(env.get("XDG_CONFIG_HOME") or home / ".config"),
        Path(env.get("XDG_CACHE_HOME") or home / ".cache"),
        Path(env.get("XDG_DATA_HOME") or home / ".local" / "share"),
    )


@dataclass(frozen=True, slots=True)
class AppPaths:
    """Config, cache and data roots, each already namespaced under ``llvmenv``.

    Instances are plain values: nothing is created on disk until one of the
    ``ensure_*`` helpers or a consumer asks for a directory.
    """

    config_dir: Path
    cache_dir: Path
    data_dir: Path

    @classmethod
    def from_environment(cls, env: Mapping[str, str] | None = None) -> AppPaths:
        """Return roots derived from XDG variables or platform conventions."""

        environ = os.environ if env is None else env
        home = Path(environ.get("HOME") or Path.home())
        config_root, cache_root, data_root = _platform_roots(environ, home)
        return cls(
            config_dir=config_root / APP_NAME,
            cache_dir=cache_root / APP_NAME,
            data_dir=data_root / APP_NAME,
        )

    @classmethod
    def under(cls, root: Path) -> AppPaths:
        """Return roots nested beneath a single directory (handy for tests)."""

        return cls(config_dir=root / "config", cache_dir=root / "cache", data_dir=root / "data")

    @property
    def entry_toml(self) -> Path:
        return self.config_dir / ENTRY_TOML

    @property
    def config_toml(self) -> Path:
        return self.config_dir / CONFIG_TOML

    @property
    def archive_cache(self) -> Path:
        """Shared directory of downloaded archives keyed by filename."""

        return self.cache_dir / ARCHIVE_CACHE_SUBDIR

    def source_dir(self, name: str) -> Path:
        return self.cache_dir / name

    def prefix(self, name: str) -> Path:
        return self.data_dir / name

    def lock_file(self, name: str) -> Path:
        return self.cache_dir / f"{name}.lock"


__all__ = [
    "APP_NAME",
    "ARCHIVE_CACHE_SUBDIR",
    "AppPaths",
    "BUILD_SUBDIR",
    "CONFIG_TOML",
    "ENTRY_TOML",
    "ensure_directory",
]
