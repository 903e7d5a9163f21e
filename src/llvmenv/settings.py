# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Declarative entry settings decoded from ``entry.toml``.

A section such as::

    [llvm-main]
    url = "https://github.com/llvm/llvm-project.git#main"
    target = ["X86", "AArch64"]
    generator = "Ninja"
    build_type = "RelWithDebInfo"
    source_subdir = "llvm"

    [llvm-main.option]
    LLVM_ENABLE_PROJECTS = "clang;lld"

    [[llvm-main.tools]]
    name = "extra"
    url = "https://example.org/extra.git"
    relative_path = "tools/clang/tools/extra"

is validated into an :class:`EntrySetting`. Origin exclusivity (``url`` xor
``path``) is checked when an entry is built from the setting, because the
error has to carry the entry name.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import UnsupportedBuildTypeError, UnsupportedGeneratorError


class CMakeGenerator(str, Enum):
    """CMake generator backends (the ``-G`` option)."""

    PLATFORM = "Platform"
    MAKEFILE = "Makefile"
    NINJA = "Ninja"
    VISUAL_STUDIO = "VisualStudio"
    VISUAL_STUDIO_WIN64 = "VisualStudioWin64"

    @classmethod
    def parse(cls, value: str | CMakeGenerator) -> CMakeGenerator:
        """Return the generator named by *value* (case-insensitive, ``vs`` alias).

        Raises:
            UnsupportedGeneratorError: If *value* names no known generator.
        """

        if isinstance(value, CMakeGenerator):
            return value
        try:
            return _GENERATOR_ALIASES[value.strip().lower()]
        except KeyError:
            raise UnsupportedGeneratorError(value) from None

    def options(self) -> list[str]:
        """Return the configure-time arguments selecting this generator."""

        return list(_GENERATOR_OPTIONS[self])

    def build_options(self, jobs: int, build_type: BuildType) -> list[str]:
        """Return the extra arguments appended to ``cmake --build``.

        Makefile and Ninja receive a native parallelism flag; the Visual Studio
        family selects the configuration instead since its builds are
        multi-config.
        """

        if self in (CMakeGenerator.VISUAL_STUDIO, CMakeGenerator.VISUAL_STUDIO_WIN64):
            return ["--config", build_type.value]
        if self in (CMakeGenerator.MAKEFILE, CMakeGenerator.NINJA):
            return ["--", "-j", str(jobs)]
        return []


_GENERATOR_ALIASES: Final[dict[str, CMakeGenerator]] = {
    "platform": CMakeGenerator.PLATFORM,
    "makefile": CMakeGenerator.MAKEFILE,
    "ninja": CMakeGenerator.NINJA,
    "visualstudio": CMakeGenerator.VISUAL_STUDIO,
    "vs": CMakeGenerator.VISUAL_STUDIO,
    "visualstudiowin64": CMakeGenerator.VISUAL_STUDIO_WIN64,
}

_GENERATOR_OPTIONS: Final[dict[CMakeGenerator, tuple[str, ...]]] = {
    CMakeGenerator.PLATFORM: (),
    CMakeGenerator.MAKEFILE: ("-G", "Unix Makefiles"),
    CMakeGenerator.NINJA: ("-G", "Ninja"),
    CMakeGenerator.VISUAL_STUDIO: ("-G", "Visual Studio 15 2017"),
    CMakeGenerator.VISUAL_STUDIO_WIN64: ("-G", "Visual Studio 15 2017 Win64", "-Thost=x64"),
}


class BuildType(str, Enum):
    """Values accepted for ``CMAKE_BUILD_TYPE``."""

    DEBUG = "Debug"
    RELEASE = "Release"
    REL_WITH_DEB_INFO = "RelWithDebInfo"
    MIN_SIZE_REL = "MinSizeRel"

    @classmethod
    def parse(cls, value: str | BuildType) -> BuildType:
        """Return the build type named by *value* (case-insensitive).

        Raises:
            UnsupportedBuildTypeError: If *value* names no known build type.
        """

        if isinstance(value, BuildType):
            return value
        lowered = value.strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise UnsupportedBuildTypeError(value)


class ToolSetting(BaseModel):
    """An LLVM sub-project checked out into the main source tree."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    relative_path: str | None = None

    def destination(self) -> str:
        """Return the path, relative to the LLVM source root, receiving the tool."""

        return self.relative_path or f"tools/{self.name}"


class EntrySetting(BaseModel):
    """Settings shared by remote and local entries."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    url: str | None = None
    path: str | None = None
    target: list[str] = Field(default_factory=list)
    generator: CMakeGenerator = CMakeGenerator.PLATFORM
    build_type: BuildType = BuildType.RELEASE
    option: dict[str, str] = Field(default_factory=dict)
    tools: list[ToolSetting] = Field(default_factory=list)
    source_subdir: str | None = None

    @field_validator("target", mode="before")
    @classmethod
    def _coerce_target(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("generator", mode="before")
    @classmethod
    def _parse_generator(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return CMakeGenerator.parse(value)
            except UnsupportedGeneratorError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @field_validator("build_type", mode="before")
    @classmethod
    def _parse_build_type(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return BuildType.parse(value)
            except UnsupportedBuildTypeError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @field_validator("option", mode="before")
    @classmethod
    def _stringify_options(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        return {str(key): _cmake_value(item) for key, item in value.items()}


def _cmake_value(value: object) -> object:
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    if isinstance(value, (int, float)):
        return str(value)
    return value


__all__ = ["BuildType", "CMakeGenerator", "EntrySetting", "ToolSetting"]
