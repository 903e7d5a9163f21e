# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Entries describe how to obtain and compile one LLVM/Clang source tree.

An entry is *remote* when its setting carries ``url`` and *local* when it
carries ``path``. Remote sources live in ``<cache>/<name>``; every entry
installs into ``<data>/<name>``. The build directory is ``<source>/build``.
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from packaging.version import Version

from .errors import EntryLockedError, FileSystemError, InvalidEntryError
from .fetch import DEFAULT_DOWNLOAD_TIMEOUT, ExistingSourcePolicy, fetch_resource, update_resource
from .logging import info, ok, warn
from .paths import ARCHIVE_CACHE_SUBDIR, BUILD_SUBDIR, AppPaths, ensure_directory
from .process_utils import run_command, which
from .resource import Resource, TarResource, resolve_resource
from .settings import BuildType, CMakeGenerator, EntrySetting, ToolSetting
from .versioning import parse_version

LOGGER = logging.getLogger(__name__)

LLVM_TOOL_NAME: Final[str] = "llvm"
RESERVED_NAMES: Final[frozenset[str]] = frozenset({"", ".", "..", ARCHIVE_CACHE_SUBDIR})

# Optional accelerators enabled when present on PATH, in emission order.
ACCELERATOR_DEFINES: Final[tuple[tuple[str, str], ...]] = (
    ("ccache", "-DLLVM_CCACHE_BUILD=ON"),
    ("lld", "-DLLVM_ENABLE_LLD=ON"),
)


@contextmanager
def entry_lock(path: Path) -> Iterator[None]:
    """Hold an advisory lock file at *path* for the duration of the block.

    The lock file records the holder's PID. A lock whose holder no longer
    exists is removed with a warning and taken over.

    Raises:
        EntryLockedError: If a live process (or an unreadable lock) holds *path*.
    """

    ensure_directory(path.parent)
    fd = _create_lock(path)
    try:
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        yield
    finally:
        path.unlink(missing_ok=True)


def _create_lock(path: Path) -> int:
    flags = os.O_CREAT | os.O_EXCL | os.O_WRONLY
    try:
        return os.open(path, flags)
    except FileExistsError as exc:
        holder = _lock_holder(path)
        if holder is None or _process_alive(holder):
            raise EntryLockedError(path, holder) from exc
        warn(f"Removing stale lock {path} left by process {holder}")
        path.unlink(missing_ok=True)
    try:
        return os.open(path, flags)
    except FileExistsError as exc:
        raise EntryLockedError(path, _lock_holder(path)) from exc


def _lock_holder(path: Path) -> int | None:
    try:
        pid = int(path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None
    return pid if pid > 0 else None


def _process_alive(pid: int) -> bool:
    # Without a portable liveness check any recorded holder counts as alive.
    if os.name != "posix":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def remove_tree(path: Path) -> bool:
    """Recursively delete *path*; an absent path counts as success.

    Returns:
        bool: ``True`` when something was removed.

    Raises:
        FileSystemError: If deletion fails.
    """

    if not path.exists() and not path.is_symlink():
        LOGGER.debug("Nothing to remove at %s", path)
        return False
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc
    return True


@dataclass(slots=True)
class Entry(ABC):
    """Common behaviour of remote and local entries."""

    name: str
    version: Version | None
    setting: EntrySetting
    paths: AppPaths

    def set_builder(self, generator: str | CMakeGenerator) -> None:
        """Override the CMake generator (``Ninja``, ``vs``, ...)."""

        self.setting.generator = CMakeGenerator.parse(generator)
        info(f"CMake generator: {self.setting.generator.value}")

    def set_build_type(self, build_type: str | BuildType) -> None:
        """Override ``CMAKE_BUILD_TYPE``."""

        self.setting.build_type = BuildType.parse(build_type)
        info(f"Build type: {self.setting.build_type.value}")

    @abstractmethod
    def src_dir(self) -> Path:
        """Return the directory holding the entry's sources."""

    @abstractmethod
    def source_root(self) -> Path:
        """Return the directory passed to CMake as its source tree."""

    @abstractmethod
    def checkout(
        self,
        *,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        existing: ExistingSourcePolicy = ExistingSourcePolicy.SKIP,
    ) -> None:
        """Obtain the sources."""

    @abstractmethod
    def update(self) -> None:
        """Bring existing sources up to date."""

    @abstractmethod
    def clean_cache_dir(self) -> None:
        """Discard the sources."""

    def build_dir(self) -> Path:
        path = self.src_dir() / BUILD_SUBDIR
        if not path.exists():
            info(f"Created build dir: {path}")
        return ensure_directory(path)

    def prefix(self) -> Path:
        return self.paths.prefix(self.name)

    def clean_build_dir(self) -> None:
        path = self.src_dir() / BUILD_SUBDIR
        info(f"Remove build dir: {path}")
        remove_tree(path)

    def configure_command(self) -> list[str]:
        """Return the CMake configure invocation.

        Arguments are emitted in a fixed order: generator options, source
        directory, install prefix, build type, accelerator defines, target
        list, then user options sorted by key.
        """

        setting = self.setting
        command = ["cmake", *setting.generator.options(), str(self.source_root())]
        command.append(f"-DCMAKE_INSTALL_PREFIX={self.prefix()}")
        command.append(f"-DCMAKE_BUILD_TYPE={setting.build_type.value}")
        for executable, define in ACCELERATOR_DEFINES:
            if which(executable) is not None:
                command.append(define)
        targets = list(dict.fromkeys(setting.target))
        if targets:
            command.append(f"-DLLVM_TARGETS_TO_BUILD={';'.join(targets)}")
        command.extend(f"-D{key}={value}" for key, value in sorted(setting.option.items()))
        return command

    def build_command(self, jobs: int) -> list[str]:
        """Return the ``cmake --build`` invocation installing into the prefix."""

        setting = self.setting
        return [
            "cmake",
            "--build",
            str(self.build_dir()),
            "--target",
            "install",
            *setting.generator.build_options(jobs, setting.build_type),
        ]

    def configure(self) -> None:
        run_command(self.configure_command(), cwd=self.build_dir())

    def build(self, jobs: int) -> None:
        """Configure and build the entry, installing into :meth:`prefix`."""

        with entry_lock(self.paths.lock_file(self.name)):
            self.configure()
            run_command(self.build_command(jobs))
        ok(f"Installed {self.name} into {self.prefix()}")


@dataclass(slots=True)
class RemoteEntry(Entry):
    """Entry whose sources are fetched from ``url``."""

    url: str
    _resource: Resource | None = field(default=None, init=False, repr=False, compare=False)

    def resource(self) -> Resource:
        if self._resource is None:
            self._resource = resolve_resource(self.url)
        return self._resource

    def src_dir(self) -> Path:
        return ensure_directory(self.paths.source_dir(self.name))

    def source_root(self) -> Path:
        root = self.src_dir()
        if isinstance(self.resource(), TarResource):
            root /= LLVM_TOOL_NAME
        if self.setting.source_subdir:
            root /= self.setting.source_subdir
        return root

    def tools_root(self) -> Path:
        """Return the LLVM tree that add-on tools are checked out into."""

        root = self.src_dir()
        if isinstance(self.resource(), TarResource):
            root /= LLVM_TOOL_NAME
        return root

    def checkout(
        self,
        *,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        existing: ExistingSourcePolicy = ExistingSourcePolicy.SKIP,
    ) -> None:
        info(f"Checkout {self.name}")
        with entry_lock(self.paths.lock_file(self.name)):
            fetch_resource(
                self.resource(),
                self.src_dir(),
                tool_name=LLVM_TOOL_NAME,
                archive_cache=self.paths.archive_cache,
                timeout=timeout,
                existing=existing,
            )
            for tool in self.setting.tools:
                self._checkout_tool(tool, timeout=timeout, existing=existing)
        ok("Checkout done")

    def _checkout_tool(self, tool: ToolSetting, *, timeout: float, existing: ExistingSourcePolicy) -> None:
        resource = resolve_resource(tool.url)
        destination = self.tools_root() / tool.destination()
        info(f"Checkout tool {tool.name} into {destination}")
        if isinstance(resource, TarResource):
            # Archives are re-rooted under ``<parent>/<tool_name>``.
            fetch_resource(
                resource,
                destination.parent,
                tool_name=destination.name,
                archive_cache=self.paths.archive_cache,
                timeout=timeout,
                existing=existing,
            )
            return
        fetch_resource(
            resource,
            destination,
            tool_name=tool.name,
            archive_cache=self.paths.archive_cache,
            timeout=timeout,
            existing=existing,
        )

    def update(self) -> None:
        update_resource(self.resource(), self.src_dir())
        for tool in self.setting.tools:
            resource = resolve_resource(tool.url)
            update_resource(resource, self.tools_root() / tool.destination())

    def clean_cache_dir(self) -> None:
        path = self.paths.source_dir(self.name)
        info(f"Remove cache dir: {path}")
        remove_tree(path)


@dataclass(slots=True)
class LocalEntry(Entry):
    """Entry building an existing checkout at ``path``."""

    path: Path

    def src_dir(self) -> Path:
        if not self.path.is_dir():
            raise FileSystemError(self.path, "local source directory does not exist")
        return self.path

    def source_root(self) -> Path:
        root = self.src_dir()
        if self.setting.source_subdir:
            root /= self.setting.source_subdir
        return root

    def checkout(
        self,
        *,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        existing: ExistingSourcePolicy = ExistingSourcePolicy.SKIP,
    ) -> None:
        LOGGER.debug("Local entry %s uses %s as-is", self.name, self.path)

    def update(self) -> None:
        LOGGER.debug("Local entry %s is not updated by llvmenv", self.name)

    def clean_cache_dir(self) -> None:
        warn(f"Refusing to discard local sources of {self.name} at {self.path}")


def expand_path(value: str) -> Path:
    """Expand ``~`` and environment variables in a configured path."""

    return Path(os.path.expandvars(os.path.expanduser(value)))


def validate_name(name: str) -> None:
    """Reject names that cannot serve as a directory name under the cache root."""

    if name.strip() in RESERVED_NAMES:
        raise InvalidEntryError(name, "reserved entry name")
    if "/" in name or "\\" in name:
        raise InvalidEntryError(name, "entry names must not contain path separators")


def entry_from_setting(
    name: str,
    setting: EntrySetting,
    *,
    paths: AppPaths,
    version: Version | None = None,
) -> Entry:
    """Build a remote or local entry from *setting*.

    The entry's version is parsed from *name* unless given explicitly.

    Raises:
        InvalidEntryError: If both or neither of ``url`` and ``path`` are set.
    """

    validate_name(name)
    if version is None:
        version = parse_version(name)
    if setting.path is not None and setting.url is not None:
        raise InvalidEntryError(name, "One of path or url is allowed")
    if setting.path is not None:
        return LocalEntry(name=name, version=version, setting=setting, paths=paths, path=expand_path(setting.path))
    if setting.url is not None:
        return RemoteEntry(name=name, version=version, setting=setting, paths=paths, url=setting.url)
    raise InvalidEntryError(name, "Neither path nor url is set")


__all__ = [
    "ACCELERATOR_DEFINES",
    "Entry",
    "LLVM_TOOL_NAME",
    "LocalEntry",
    "RemoteEntry",
    "entry_from_setting",
    "entry_lock",
    "expand_path",
    "remove_tree",
    "validate_name",
]
