# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Fetch, update and unpack remote LLVM/Clang sources."""

from __future__ import annotations

import logging
import os
import tarfile
import tempfile
from collections.abc import Iterator
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Final

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from urllib3.exceptions import ReadTimeoutError

from .console import detect_tty, get_console
from .errors import ArchiveError, DownloadError, DownloadTimeoutError, HttpError, SourceExistsError
from .logging import emoji_enabled, info
from .paths import ensure_directory
from .process_utils import run_command
from .resource import GitResource, Resource, SvnResource, TarResource, filename_from_url

LOGGER = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_TIMEOUT: Final[float] = 300.0
DOWNLOAD_CHUNK_SIZE: Final[int] = 1 << 16


class ExistingSourcePolicy(str, Enum):
    """What a checkout does when its destination already holds files."""

    SKIP = "skip"
    FAIL = "fail"


def fetch_resource(
    resource: Resource,
    destination: Path,
    *,
    tool_name: str,
    archive_cache: Path,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
    existing: ExistingSourcePolicy = ExistingSourcePolicy.SKIP,
) -> bool:
    """Check out or download *resource* into *destination*.

    Args:
        resource: Resolved resource descriptor.
        destination: Directory receiving the source tree.
        tool_name: Subdirectory archives are unpacked into.
        archive_cache: Shared directory of downloaded archives keyed by filename.
        timeout: Seconds allowed for connecting to and reading from the server.
        existing: Behaviour when the checkout target is already populated. The
            target is *destination* for VCS resources and
            ``destination/tool_name`` for archives.

    Returns:
        bool: ``True`` when sources were fetched, ``False`` when skipped.

    Raises:
        FileSystemError: If *destination* exists but is not a directory.
        SourceExistsError: If the target is populated under ``FAIL``.
    """

    ensure_directory(destination)
    target = destination / tool_name if isinstance(resource, TarResource) else destination
    if _is_populated(target):
        if existing is ExistingSourcePolicy.FAIL:
            raise SourceExistsError(target)
        info(f"Sources already present in {target}; skipping checkout")
        return False

    match resource:
        case SvnResource(url=url):
            run_command(["svn", "co", url, "-r", "HEAD", str(destination)])
        case GitResource(url=url, branch=branch):
            info(f"Git clone {url}")
            command = ["git", "clone", "-q", "--depth", "1"]
            if branch:
                command.extend(["-b", branch])
            command.extend([url, str(destination)])
            run_command(command)
        case TarResource(url=url):
            archive = cached_download(url, archive_cache, timeout=timeout)
            unpack_archive(archive, destination, tool_name=tool_name)
    return True


def update_resource(resource: Resource, destination: Path) -> None:
    """Bring an existing checkout up to date; archives are immutable snapshots."""

    match resource:
        case SvnResource():
            run_command(["svn", "update"], cwd=destination)
        case GitResource():
            run_command(["git", "pull"], cwd=destination)
        case TarResource():
            LOGGER.debug("Archive resources cannot be updated; nothing to do")


def _is_populated(directory: Path) -> bool:
    return directory.is_dir() and any(directory.iterdir())


def cached_download(url: str, cache_dir: Path, *, timeout: float = DEFAULT_DOWNLOAD_TIMEOUT) -> Path:
    """Return the cached archive for *url*, downloading it on a cache miss."""

    ensure_directory(cache_dir)
    target = cache_dir / filename_from_url(url)
    if target.is_file():
        info(f"Using cached archive: {target}")
        return target
    info(f"Downloading archive: {url}")
    download(url, target, timeout=timeout)
    info(f"Archive cached: {target}")
    return target


def download(url: str, destination: Path, *, timeout: float = DEFAULT_DOWNLOAD_TIMEOUT) -> None:
    """Stream *url* into *destination*, reporting byte progress.

    The body is written to a temporary file beside *destination* and renamed
    into place only once complete, so an interrupted download never poisons
    the cache.

    Raises:
        HttpError: If the server answers with a non-2xx status.
        DownloadTimeoutError: If connecting or reading exceeds *timeout*.
    """

    try:
        with requests.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
            if not 200 <= response.status_code < 300:
                raise HttpError(url, response.status_code)
            total = _content_length(response.headers.get("Content-Length"))
            fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "wb") as handle, _download_progress() as progress:
                    task = progress.add_task("download", total=total)
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        handle.write(chunk)
                        progress.advance(task, len(chunk))
                os.replace(tmp_path, destination)
            finally:
                tmp_path.unlink(missing_ok=True)
    except requests.Timeout as exc:
        raise DownloadTimeoutError(url, timeout) from exc
    except requests.ConnectionError as exc:
        if _is_read_timeout(exc):
            raise DownloadTimeoutError(url, timeout) from exc
        raise DownloadError(url, str(exc)) from exc
    except requests.RequestException as exc:
        raise DownloadError(url, str(exc)) from exc


def _is_read_timeout(exc: requests.ConnectionError) -> bool:
    # ``iter_content`` wraps a stalled body read in ConnectionError.
    return any(isinstance(arg, ReadTimeoutError) for arg in exc.args)


def _content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length > 0 else None


def _download_progress() -> Progress:
    console = get_console(color=detect_tty(), emoji=emoji_enabled())
    return Progress(
        SpinnerColumn(style="green"),
        TimeElapsedColumn(),
        BarColumn(bar_width=38),
        DownloadColumn(),
        TimeRemainingColumn(),
        TransferSpeedColumn(),
        console=console,
        transient=True,
    )


def _unpack_progress() -> Progress:
    console = get_console(color=detect_tty(), emoji=emoji_enabled())
    return Progress(
        SpinnerColumn(style="green"),
        TimeElapsedColumn(),
        TextColumn("Unpacking: {task.description}", markup=False),
        TextColumn("[{task.completed}]", markup=False),
        console=console,
        transient=True,
    )


def strip_leading_component(name: str) -> PurePosixPath | None:
    """Return *name* without its first path component, or ``None`` if nothing remains."""

    parts = PurePosixPath(name).parts
    if parts and parts[0] == "/":
        parts = parts[1:]
    if len(parts) < 2:
        return None
    return PurePosixPath(*parts[1:])


def unpack_archive(archive: Path, destination: Path, *, tool_name: str) -> int:
    """Unpack *archive* into ``destination/tool_name`` dropping each member's top directory.

    Extraction is best effort: a member that already exists is logged at debug
    level, any other per-member failure is logged as a warning, and the
    remaining members are still unpacked.

    Returns:
        int: Number of members unpacked successfully.

    Raises:
        ArchiveError: If the archive cannot be opened or decompressed.
    """

    root = ensure_directory(destination / tool_name)
    unpacked = 0
    try:
        with tarfile.open(archive, "r:*") as tar, _unpack_progress() as progress:
            task = progress.add_task("", total=None)
            for member in _iter_members(tar, archive):
                progress.update(task, description=member.name)
                remapped = _remap_member(member)
                if remapped is not None and _extract_member(tar, remapped, root):
                    unpacked += 1
                progress.advance(task)
    except (tarfile.ReadError, tarfile.CompressionError, EOFError) as exc:
        raise ArchiveError(archive, f"cannot read archive: {exc}") from exc
    info(f"Unpacking completed: {unpacked} entries into {root}")
    return unpacked


def _iter_members(tar: tarfile.TarFile, archive: Path) -> Iterator[tarfile.TarInfo]:
    while True:
        try:
            member = tar.next()
        except tarfile.ReadError as exc:
            LOGGER.warning("Stopped reading %s: %s", archive, exc)
            return
        if member is None:
            return
        yield member


def _remap_member(member: tarfile.TarInfo) -> tarfile.TarInfo | None:
    stripped = strip_leading_component(member.name)
    if stripped is None:
        return None
    changes: dict[str, str] = {"name": stripped.as_posix()}
    if member.islnk():
        link_target = strip_leading_component(member.linkname)
        if link_target is None:
            LOGGER.warning("Skipping hard link %s with unusable target %s", member.name, member.linkname)
            return None
        changes["linkname"] = link_target.as_posix()
    return member.replace(**changes, deep=False)


def _extract_member(tar: tarfile.TarFile, member: tarfile.TarInfo, root: Path) -> bool:
    target = root / member.name
    if member.isdir() and (target.is_file() or target.is_symlink()):
        LOGGER.debug("%s already exists and is not a directory", member.name)
        return False
    try:
        tar.extract(member, path=root, filter="data")
    except FileExistsError as exc:
        LOGGER.debug("%s already exists: %s", member.name, exc)
        return False
    except (KeyError, OSError, tarfile.TarError) as exc:
        LOGGER.warning("Failed to unpack %s: %s", member.name, exc)
        return False
    return True


__all__ = [
    "DEFAULT_DOWNLOAD_TIMEOUT",
    "ExistingSourcePolicy",
    "cached_download",
    "download",
    "fetch_resource",
    "strip_leading_component",
    "unpack_archive",
    "update_resource",
]
