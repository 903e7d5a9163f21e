# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Load user entries from ``entry.toml`` and merge them with official releases."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import ValidationError

from .entry import Entry, entry_from_setting
from .errors import ConfigAlreadyExistsError, ConfigError, FileSystemError, InvalidEntryError
from .paths import AppPaths, ensure_directory
from .settings import EntrySetting
from .versioning import parse_requirement

LOGGER = logging.getLogger(__name__)

OFFICIAL_RELEASES: Final[tuple[str, ...]] = (
    "18.1.0",
    "17.0.2",
    "17.0.0",
    "16.0.6",
    "16.0.0",
    "15.0.7",
    "15.0.0",
    "14.0.6",
    "14.0.0",
    "13.0.0",
    "12.0.1",
    "12.0.0",
    "11.1.0",
    "11.0.0",
    "10.0.1",
    "10.0.0",
)
OFFICIAL_URL_TEMPLATE: Final[str] = "https://github.com/llvm/llvm-project/archive/refs/tags/llvmorg-{version}.tar.gz"
OFFICIAL_SOURCE_SUBDIR: Final[str] = "llvm"

ENTRY_TEMPLATE: Final[str] = """\
# llvmenv entries
#
# Each table defines one entry. Set exactly one of `url` (remote sources)
# or `path` (an existing checkout).
#
# [llvm-main]
# url = "https://github.com/llvm/llvm-project.git#main"
# source_subdir = "llvm"
# target = ["X86"]
# generator = "Ninja"
# build_type = "Release"
#
# [llvm-main.option]
# LLVM_ENABLE_PROJECTS = "clang;lld"
#
# [local-llvm]
# path = "~/src/llvm-project"
# source_subdir = "llvm"
"""


def official_entry(version: str, *, paths: AppPaths) -> Entry:
    """Return the built-in entry for the release tarball of *version*."""

    setting = EntrySetting(
        url=OFFICIAL_URL_TEMPLATE.format(version=version),
        source_subdir=OFFICIAL_SOURCE_SUBDIR,
    )
    return entry_from_setting(version, setting, paths=paths)


def official_releases(*, paths: AppPaths) -> list[Entry]:
    """Return the built-in release entries, newest first."""

    return [official_entry(version, paths=paths) for version in OFFICIAL_RELEASES]


def load_entry_document(path: Path) -> dict[str, Any]:
    """Return the parsed ``entry.toml`` at *path*; a missing file is empty.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
    """

    if not path.exists():
        LOGGER.debug("No entry document at %s", path)
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(messages)


def parse_user_entries(document: Mapping[str, Any], *, paths: AppPaths) -> list[Entry]:
    """Build entries from the tables of a decoded ``entry.toml`` in document order.

    Raises:
        InvalidEntryError: If a table fails validation or sets both/neither origin.
    """

    entries: list[Entry] = []
    for name, section in document.items():
        if not isinstance(section, Mapping):
            raise InvalidEntryError(name, "expected a table")
        try:
            setting = EntrySetting.model_validate(dict(section))
        except ValidationError as exc:
            raise InvalidEntryError(name, _format_validation_error(exc)) from exc
        entries.append(entry_from_setting(name, setting, paths=paths))
    return entries


def load_user_entries(path: Path, *, paths: AppPaths) -> list[Entry]:
    return parse_user_entries(load_entry_document(path), paths=paths)


def init_entry_document(path: Path) -> Path:
    """Write the commented ``entry.toml`` template to *path*.

    Raises:
        ConfigAlreadyExistsError: If *path* already exists.
    """

    if path.exists():
        raise ConfigAlreadyExistsError(path)
    ensure_directory(path.parent)
    try:
        path.write_text(ENTRY_TEMPLATE, encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc
    return path


class EntryCatalog:
    """Ordered, name-unique collection of entries.

    Earlier entries shadow later ones with the same name, so user entries
    passed first take precedence over official releases.
    """

    def __init__(self, entries: Iterable[Entry]) -> None:
        unique: dict[str, Entry] = {}
        for entry in entries:
            if entry.name in unique:
                LOGGER.debug("Entry '%s' shadows a later definition", entry.name)
                continue
            unique[entry.name] = entry
        self._entries = tuple(unique.values())

    @classmethod
    def load(cls, paths: AppPaths) -> EntryCatalog:
        """Return user entries from ``entry.toml`` followed by official releases."""

        user_entries = load_user_entries(paths.entry_toml, paths=paths)
        return cls([*user_entries, *official_releases(paths=paths)])

    @property
    def entries(self) -> tuple[Entry, ...]:
        return self._entries

    def names(self) -> list[str]:
        return [entry.name for entry in self._entries]

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, name: str) -> Entry:
        """Return the entry called *name*, else the first whose version satisfies it.

        ``17.0.2`` matches by name; ``>=17.0.0, <18.0.0`` or ``16`` match the
        first versioned entry (in catalog order) inside the requirement.

        Raises:
            InvalidEntryError: If nothing matches.
        """

        for entry in self._entries:
            if entry.name == name:
                return entry

        requirement = parse_requirement(name)
        if requirement is not None:
            for entry in self._entries:
                if entry.version is not None and requirement.matches(entry.version):
                    LOGGER.debug("Requirement '%s' selected entry '%s'", name, entry.name)
                    return entry
        raise InvalidEntryError(name, "Entry not found")


__all__ = [
    "ENTRY_TEMPLATE",
    "EntryCatalog",
    "OFFICIAL_RELEASES",
    "OFFICIAL_URL_TEMPLATE",
    "init_entry_document",
    "load_entry_document",
    "load_user_entries",
    "official_entry",
    "official_releases",
    "parse_user_entries",
]
