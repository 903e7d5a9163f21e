# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Classify remote LLVM/Clang source URLs into fetch protocols.

>>> resolve_resource("http://llvm.org/svn/llvm-project/llvm/trunk")
SvnResource(url='http://llvm.org/svn/llvm-project/llvm/trunk')
>>> resolve_resource("https://github.com/llvm/llvm-project")
GitResource(url='https://github.com/llvm/llvm-project', branch=None)
>>> resolve_resource("https://example.com/llvm.git#release/17.x")
GitResource(url='https://example.com/llvm.git', branch='release/17.x')

Rules are tried in order; the ``git ls-remote`` check runs only when no URL
shape matched.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Final
from urllib.parse import SplitResult, unquote, urlsplit, urlunsplit

from .errors import InvalidUrlError
from .process_utils import TIMEOUT_RETURNCODE, run_command

LOGGER = logging.getLogger(__name__)

ARCHIVE_SUFFIXES: Final[tuple[str, ...]] = (".tar.gz", ".tar.xz", ".tar.bz2", ".tar.Z", ".tgz", ".taz")
GIT_HOSTING_SERVICES: Final[tuple[str, ...]] = ("github.com", "gitlab.com")
LLVM_PROJECT_HOST: Final[str] = "llvm.org"
LS_REMOTE_TIMEOUT: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class SvnResource:
    """Remote Subversion repository."""

    url: str


@dataclass(frozen=True, slots=True)
class GitResource:
    """Remote Git repository, optionally pinned to a branch or tag."""

    url: str
    branch: str | None = None


@dataclass(frozen=True, slots=True)
class TarResource:
    """Release tarball."""

    url: str


Resource = SvnResource | GitResource | TarResource
GitCheck = Callable[[str], bool]


def parse_url(url: str) -> SplitResult:
    """Return the split form of *url*, requiring an absolute URL.

    Raises:
        InvalidUrlError: If *url* has no scheme, or no host for non-``file`` schemes.
    """

    try:
        parts = urlsplit(url.strip())
    except ValueError as exc:
        raise InvalidUrlError(url) from exc
    if not parts.scheme or " " in url.strip():
        raise InvalidUrlError(url)
    if parts.scheme != "file" and not parts.netloc:
        raise InvalidUrlError(url)
    return parts


def filename_from_url(url: str) -> str:
    """Return the last path segment of *url* (empty for a trailing slash)."""

    path = parse_url(url).path
    return unquote(path.rsplit("/", 1)[-1])


def _git_resource(url: str) -> GitResource:
    parts = parse_url(url)
    stripped = urlunsplit(parts._replace(fragment=""))
    return GitResource(url=stripped, branch=parts.fragment or None)


def speaks_git(url: str) -> bool:
    """Return ``True`` when ``git ls-remote`` can list *url*.

    Subversion servers reject git access while most Git hosts (GitHub
    included) also answer svn requests, so only a successful git listing is
    conclusive. ``git init`` and ``git remote add`` are local operations; their
    failure propagates. A listing that outlives :data:`LS_REMOTE_TIMEOUT` counts
    as a failure.
    """

    env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
    with tempfile.TemporaryDirectory(prefix="llvmenv-ls-remote-") as scratch:
        workdir = Path(scratch)
        run_command(["git", "init", "-q"], cwd=workdir, capture_output=True, env=env)
        run_command(["git", "remote", "add", "origin", url], cwd=workdir, capture_output=True, env=env)
        completed = run_command(
            ["git", "ls-remote"],
            cwd=workdir,
            capture_output=True,
            env=env,
            check=False,
            timeout=LS_REMOTE_TIMEOUT,
            discard_stdin=True,
        )
    if completed.returncode == TIMEOUT_RETURNCODE:
        LOGGER.debug("git ls-remote timed out for %s", url)
    elif completed.returncode != 0:
        LOGGER.debug("git ls-remote failed for %s: %s", url, (completed.stderr or "").strip())
    return completed.returncode == 0


def _match_archive(url: str) -> Resource | None:
    filename = _safe_filename(url)
    for suffix in ARCHIVE_SUFFIXES:
        if filename is not None and filename.endswith(suffix):
            LOGGER.debug("Found archive extension '%s' at the end of %s", suffix, url)
            return TarResource(url=url)
    return None


def _match_svn_trunk(url: str) -> Resource | None:
    filename = _safe_filename(url)
    if filename is not None and filename.endswith("trunk"):
        LOGGER.debug("Found 'trunk' at the end of %s", url)
        return SvnResource(url=url)
    return None


def _match_git_suffix(url: str) -> Resource | None:
    filename = _safe_filename(url)
    if filename is not None and filename.endswith(".git"):
        LOGGER.debug("Found '.git' extension in %s", url)
        return _git_resource(url)
    return None


def _match_hosting_service(url: str) -> Resource | None:
    host = parse_url(url).hostname
    if host in GIT_HOSTING_SERVICES:
        LOGGER.debug("URL is a cloud git service: %s", host)
        return _git_resource(url)
    return None


def _match_llvm_project(url: str) -> Resource | None:
    parts = parse_url(url)
    if parts.hostname != LLVM_PROJECT_HOST:
        return None
    if parts.path.startswith("/svn"):
        LOGGER.debug("URL is the LLVM SVN repository")
        return SvnResource(url=url)
    if parts.path.startswith("/git"):
        LOGGER.debug("URL is an LLVM Git repository")
        return _git_resource(url)
    return None


def _safe_filename(url: str) -> str | None:
    try:
        return filename_from_url(url)
    except InvalidUrlError:
        return None


_RULES: Final[tuple[Callable[[str], Resource | None], ...]] = (
    _match_archive,
    _match_svn_trunk,
    _match_git_suffix,
    _match_hosting_service,
    _match_llvm_project,
)


def resolve_resource(url: str, *, git_check: GitCheck | None = None) -> Resource:
    """Return the fetch protocol for *url*.

    Args:
        url: Remote source URL; a ``#fragment`` on Git URLs selects the branch.
        git_check: Callable deciding whether *url* speaks git; defaults to
            :func:`speaks_git`.

    Returns:
        Resource: The resolved resource descriptor.

    Raises:
        InvalidUrlError: If *url* is not an absolute URL.
    """

    for rule in _RULES:
        resource = rule(url)
        if resource is not None:
            return resource

    check = git_check or speaks_git
    LOGGER.debug("Trying git access to %s", url)
    if check(url):
        LOGGER.debug("Git access succeeded")
        return _git_resource(url)
    LOGGER.debug("Git access failed; treating %s as a Subversion repository", url)
    return SvnResource(url=url)


__all__ = [
    "ARCHIVE_SUFFIXES",
    "GIT_HOSTING_SERVICES",
    "LS_REMOTE_TIMEOUT",
    "GitCheck",
    "GitResource",
    "Resource",
    "SvnResource",
    "TarResource",
    "filename_from_url",
    "parse_url",
    "resolve_resource",
    "speaks_git",
]
