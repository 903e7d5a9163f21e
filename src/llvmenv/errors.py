# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Exceptions raised while resolving, fetching and building entries."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from pathlib import Path


class LlvmenvError(RuntimeError):
    """Base class for every error surfaced to the command layer."""


class ConfigError(LlvmenvError):
    """Raised when a configuration document cannot be parsed or validated."""


class ConfigAlreadyExistsError(ConfigError):
    """Raised by ``init`` when the entry document is already present."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Configuration already exists: {path}")
        self.path = path


class InvalidUrlError(LlvmenvError):
    """Raised when a source URL cannot be parsed."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class UnsupportedGeneratorError(LlvmenvError):
    """Raised when a CMake generator name is not recognised."""

    def __init__(self, generator: str) -> None:
        super().__init__(f"Unsupported CMake generator: {generator!r}")
        self.generator = generator


class UnsupportedBuildTypeError(LlvmenvError):
    """Raised when a CMake build type name is not recognised."""

    def __init__(self, build_type: str) -> None:
        super().__init__(f"Unsupported CMake build type: {build_type!r}")
        self.build_type = build_type


class InvalidEntryError(LlvmenvError):
    """Raised when an entry is malformed or cannot be found."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"Invalid entry '{name}': {message}")
        self.name = name
        self.message = message


class DownloadError(LlvmenvError):
    """Raised when an archive cannot be downloaded."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Download of {url} failed: {message}")
        self.url = url


class HttpError(DownloadError):
    """Raised when an archive download answers with a non-success status."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(url, f"HTTP status {status}")
        self.status = status


class DownloadTimeoutError(DownloadError):
    """Raised when an archive download does not complete within the timeout."""

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(url, f"timed out after {timeout:.1f}s")
        self.timeout = timeout


class CommandError(LlvmenvError):
    """Raised when an external process exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str | None = None) -> None:
        message = f"Command `{shlex.join(command)}` exited with status {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class ExecutableNotFoundError(LlvmenvError):
    """Raised when a required executable is missing from ``PATH``."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"Executable '{executable}' was not found on PATH")
        self.executable = executable


class FileSystemError(LlvmenvError):
    """Raised when a filesystem operation fails; carries the offending path."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class SourceExistsError(FileSystemError):
    """Raised when a checkout targets a non-empty directory under the ``fail`` policy."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, "source directory already exists and is not empty")


class EntryLockedError(FileSystemError):
    """Raised when another invocation holds the lock for an entry."""

    def __init__(self, path: Path, pid: int | None = None) -> None:
        holder = f"llvmenv process {pid}" if pid is not None else "another llvmenv process"
        super().__init__(
            path,
            f"entry is locked by {holder}; delete the lock file if no llvmenv build is running",
        )
        self.pid = pid


class ArchiveError(FileSystemError):
    """Raised when a downloaded archive cannot be opened."""


__all__ = [
    "ArchiveError",
    "CommandError",
    "ConfigAlreadyExistsError",
    "ConfigError",
    "DownloadError",
    "DownloadTimeoutError",
    "EntryLockedError",
    "ExecutableNotFoundError",
    "FileSystemError",
    "HttpError",
    "InvalidEntryError",
    "InvalidUrlError",
    "LlvmenvError",
    "SourceExistsError",
    "UnsupportedBuildTypeError",
    "UnsupportedGeneratorError",
]
