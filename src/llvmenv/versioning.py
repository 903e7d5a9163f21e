# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Semantic version helpers for matching entries against version requirements.

Entry names such as ``17.0.2`` or ``18.1.0-rc3`` carry a version. Lookups
accept Cargo-style requirements (``17``, ``^16.0``, ``~15.0.1``, ``<=17``,
``>=17.0.0, <18.0.0``, ``14.*``), which are translated into
:class:`packaging.specifiers.SpecifierSet` clauses.

Pre-release versions only satisfy a requirement that names a pre-release of
the same ``MAJOR.MINOR.PATCH``; build metadata (``+local``) is ignored when
comparing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Final

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

LOGGER = logging.getLogger(__name__)

_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
SEMVER_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^\d+\.\d+\.\d+(?:-(?P<pre>{_IDENTIFIERS}))?(?:\+(?P<build>{_IDENTIFIERS}))?$"
)
_COMPARATOR_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<op>>=|<=|==|!=|>|<|=|\^|~)?\s*"
    rf"(?P<version>[0-9xX*]+(?:\.[0-9xX*]+){{0,2}})(?:-(?P<pre>{_IDENTIFIERS}))?$"
)
_WILDCARDS: Final[frozenset[str]] = frozenset({"*", "x", "X"})

Release = tuple[int, int, int]


def parse_version(name: str) -> Version | None:
    """Return the semantic version carried by an entry *name*, or ``None``.

    Only full ``MAJOR.MINOR.PATCH`` names with optional ``-pre`` and ``+build``
    parts count; ``llvm-main`` or ``17`` do not make an entry
    version-matchable. Pre-release tags must map onto PEP 440 (``rc1``,
    ``beta.2``, ``alpha``).
    """

    candidate = name.strip()
    match = SEMVER_PATTERN.match(candidate)
    if match is None:
        return None
    try:
        version = Version(candidate)
    except InvalidVersion:
        LOGGER.debug("Entry name %s is semver but has no PEP 440 equivalent", candidate)
        return None
    if match.group("pre") is not None and not version.is_prerelease:
        # ``17.0.0-1`` would otherwise read as a post-release.
        LOGGER.debug("Pre-release tag of %s has no PEP 440 equivalent", candidate)
        return None
    return version


@dataclass(frozen=True, slots=True)
class VersionRequirement:
    """A parsed version requirement."""

    text: str
    specifiers: SpecifierSet
    prerelease_releases: frozenset[Release] = field(default_factory=frozenset)

    def matches(self, version: Version) -> bool:
        if version.is_prerelease and _release(version) not in self.prerelease_releases:
            return False
        return self.specifiers.contains(version, prereleases=True)


def parse_requirement(text: str) -> VersionRequirement | None:
    """Parse *text* as a version requirement, returning ``None`` when it is not one."""

    clauses = [clause.strip() for clause in text.split(",")]
    if not clauses or any(not clause for clause in clauses):
        return None
    translated: list[str] = []
    prereleases: set[Release] = set()
    for clause in clauses:
        result = _translate_clause(clause)
        if result is None:
            return None
        specifiers, prerelease = result
        translated.extend(specifiers)
        if prerelease is not None:
            prereleases.add(_release(prerelease))
    try:
        specifier_set = SpecifierSet(",".join(translated))
    except InvalidSpecifier:
        return None
    return VersionRequirement(text=text, specifiers=specifier_set, prerelease_releases=frozenset(prereleases))


def _release(version: Version) -> Release:
    major, minor, patch = (version.release + (0, 0, 0))[:3]
    return major, minor, patch


def _translate_clause(clause: str) -> tuple[list[str], Version | None] | None:
    match = _COMPARATOR_PATTERN.match(clause)
    if match is None:
        return None
    op = match.group("op") or "^"
    parts = match.group("version").split(".")
    numbers: list[int] = []
    for part in parts:
        if part in _WILDCARDS:
            break
        if not part.isdigit():
            return None
        numbers.append(int(part))

    pre = match.group("pre")
    if pre is not None:
        if len(numbers) < 3:
            return None
        prerelease = parse_version(f"{_joined(numbers)}-{pre}")
        if prerelease is None:
            return None
        return _bounds(op, numbers, str(prerelease)), prerelease

    if len(numbers) < len(parts):
        # ``17.*`` and friends always mean "any version in this range".
        if op not in ("^", "=", "=="):
            return None
        return _partial_range(numbers), None
    return _bounds(op, numbers, _joined(numbers)), None


def _bounds(op: str, numbers: list[int], lower: str) -> list[str]:
    partial = len(numbers) < 3
    if op in (">=", "<"):
        return [f"{op}{lower}"]
    if op == "<=":
        # ``<=17`` covers every 17.x.y.
        return [f"<{_next(numbers)}"] if partial else [f"<={lower}"]
    if op == ">":
        return [f">={_next(numbers)}"] if partial else [f">{lower}"]
    if op in ("=", "=="):
        return _partial_range(numbers) if partial else [f"=={lower}"]
    if op == "!=":
        return [f"!={lower}.*"] if partial else [f"!={lower}"]
    if op == "~":
        return _tilde_range(numbers, lower)
    return _caret_range(numbers, lower)


def _joined(numbers: list[int]) -> str:
    return ".".join(str(number) for number in numbers)


def _next(numbers: list[int]) -> str:
    return _joined([*numbers[:-1], numbers[-1] + 1])


def _partial_range(numbers: list[int]) -> list[str]:
    if not numbers:
        return [">=0"]
    if len(numbers) == 3:
        return [f"=={_joined(numbers)}"]
    return [f"=={_joined(numbers)}.*"]


def _tilde_range(numbers: list[int], lower: str) -> list[str]:
    if len(numbers) == 1:
        return [f">={lower}", f"<{numbers[0] + 1}"]
    return [f">={lower}", f"<{numbers[0]}.{numbers[1] + 1}"]


def _caret_range(numbers: list[int], lower: str) -> list[str]:
    major = numbers[0]
    if major > 0 or len(numbers) == 1:
        return [f">={lower}", f"<{major + 1}"]
    minor = numbers[1]
    if minor > 0 or len(numbers) == 2:
        return [f">={lower}", f"<0.{minor + 1}"]
    return [f">={lower}", f"<0.0.{numbers[2] + 1}"]


__all__ = ["SEMVER_PATTERN", "VersionRequirement", "parse_requirement", "parse_version"]
