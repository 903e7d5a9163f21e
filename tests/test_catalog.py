# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for loading and resolving entries."""

from __future__ import annotations

from pathlib import Path

import pytest
from packaging.version import Version

from llvmenv.catalog import (
    OFFICIAL_RELEASES,
    EntryCatalog,
    init_entry_document,
    load_user_entries,
    official_releases,
)
from llvmenv.entry import LocalEntry, RemoteEntry
from llvmenv.errors import ConfigAlreadyExistsError, ConfigError, InvalidEntryError
from llvmenv.paths import AppPaths
from llvmenv.settings import CMakeGenerator


def _write_entries(paths: AppPaths, text: str) -> Path:
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.entry_toml.write_text(text, encoding="utf-8")
    return paths.entry_toml


def test_missing_entry_document_yields_only_official_releases(app_paths: AppPaths) -> None:
    catalog = EntryCatalog.load(app_paths)
    assert catalog.names() == list(OFFICIAL_RELEASES)
    assert len(catalog) == len(OFFICIAL_RELEASES)


def test_local_entry_is_found_by_name(app_paths: AppPaths, tmp_path: Path) -> None:
    _write_entries(
        app_paths,
        f"""
[local-llvm]
path = "{tmp_path.as_posix()}/llvm-project"
generator = "ninja"
target = ["X86"]
""",
    )

    catalog = EntryCatalog.load(app_paths)
    entry = catalog.resolve("local-llvm")

    assert isinstance(entry, LocalEntry)
    assert entry.path == tmp_path / "llvm-project"
    assert entry.version is None
    assert entry.setting.generator is CMakeGenerator.NINJA
    assert catalog.names()[0] == "local-llvm"


def test_official_release_resolves_by_name(app_paths: AppPaths) -> None:
    entry = EntryCatalog.load(app_paths).resolve("18.1.0")

    assert isinstance(entry, RemoteEntry)
    assert entry.url == "https://github.com/llvm/llvm-project/archive/refs/tags/llvmorg-18.1.0.tar.gz"
    assert entry.version == Version("18.1.0")
    assert entry.setting.source_subdir == "llvm"


def test_requirement_resolves_highest_matching_release(app_paths: AppPaths) -> None:
    catalog = EntryCatalog.load(app_paths)
    assert catalog.resolve(">=17.0.0, <18.0.0").name == "17.0.2"
    assert catalog.resolve("16").name == "16.0.6"
    assert catalog.resolve("~15.0.0").name == "15.0.7"


def test_partial_upper_bound_covers_whole_release_line(app_paths: AppPaths) -> None:
    catalog = EntryCatalog.load(app_paths)
    assert catalog.resolve("<=17").name == "17.0.2"
    assert catalog.resolve("<=16.0").name == "16.0.6"
    assert catalog.resolve(">16").name == "18.1.0"


def test_prerelease_entry_needs_prerelease_requirement(app_paths: AppPaths) -> None:
    _write_entries(
        app_paths,
        """
["19.1.0-rc1"]
url = "https://github.com/llvm/llvm-project.git#llvmorg-19.1.0-rc1"
""",
    )

    catalog = EntryCatalog.load(app_paths)

    assert catalog.resolve("19.1.0-rc1").version == Version("19.1.0rc1")
    assert catalog.resolve("^19.1.0-rc1").name == "19.1.0-rc1"
    assert catalog.resolve(">=18").name == "18.1.0"
    with pytest.raises(InvalidEntryError, match="Entry not found"):
        catalog.resolve("19")


def test_unknown_entry_is_not_found(app_paths: AppPaths) -> None:
    catalog = EntryCatalog.load(app_paths)
    with pytest.raises(InvalidEntryError, match="Entry not found"):
        catalog.resolve("llvm-main")
    with pytest.raises(InvalidEntryError, match="Entry not found"):
        catalog.resolve("99")


def test_user_entry_shadows_official_release(app_paths: AppPaths) -> None:
    _write_entries(
        app_paths,
        """
["17.0.2"]
url = "https://github.com/llvm/llvm-project.git#llvmorg-17.0.2"
""",
    )

    catalog = EntryCatalog.load(app_paths)
    entry = catalog.resolve("17.0.2")

    assert isinstance(entry, RemoteEntry)
    assert entry.url.endswith(".git#llvmorg-17.0.2")
    assert catalog.names().count("17.0.2") == 1
    assert catalog.names()[0] == "17.0.2"
    assert catalog.resolve("17").name == "17.0.2"


def test_both_origins_are_rejected(app_paths: AppPaths) -> None:
    path = _write_entries(
        app_paths,
        """
[broken]
url = "https://github.com/llvm/llvm-project.git"
path = "/src/llvm"
""",
    )
    with pytest.raises(InvalidEntryError, match="One of path or url is allowed"):
        load_user_entries(path, paths=app_paths)


def test_missing_origin_is_rejected(app_paths: AppPaths) -> None:
    path = _write_entries(
        app_paths,
        """
[broken]
target = ["X86"]
""",
    )
    with pytest.raises(InvalidEntryError, match="Neither path nor url is set"):
        load_user_entries(path, paths=app_paths)


def test_schema_violations_name_the_entry(app_paths: AppPaths) -> None:
    path = _write_entries(
        app_paths,
        """
[odd]
url = "https://github.com/llvm/llvm-project.git"
generator = "Xcode"
""",
    )
    with pytest.raises(InvalidEntryError) as excinfo:
        load_user_entries(path, paths=app_paths)
    assert excinfo.value.name == "odd"
    assert "generator" in excinfo.value.message


def test_reserved_entry_name_is_rejected(app_paths: AppPaths) -> None:
    path = _write_entries(
        app_paths,
        """
[cache]
url = "https://github.com/llvm/llvm-project.git"
""",
    )
    with pytest.raises(InvalidEntryError, match="reserved"):
        load_user_entries(path, paths=app_paths)


def test_invalid_toml_raises_config_error(app_paths: AppPaths) -> None:
    path = _write_entries(app_paths, "[broken\nurl = ")
    with pytest.raises(ConfigError, match="entry.toml"):
        load_user_entries(path, paths=app_paths)


def test_official_releases_are_descending(app_paths: AppPaths) -> None:
    versions = [entry.version for entry in official_releases(paths=app_paths)]
    assert versions == sorted(versions, reverse=True)


def test_init_entry_document_writes_template_once(app_paths: AppPaths) -> None:
    path = init_entry_document(app_paths.entry_toml)

    assert path.is_file()
    assert load_user_entries(path, paths=app_paths) == []
    with pytest.raises(ConfigAlreadyExistsError):
        init_entry_document(app_paths.entry_toml)
