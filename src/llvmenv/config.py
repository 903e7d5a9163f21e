# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool-wide settings loaded from ``config.toml`` in the configuration root."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .fetch import DEFAULT_DOWNLOAD_TIMEOUT, ExistingSourcePolicy


def default_parallel_jobs() -> int:
    """Return the number of available CPU cores (minimum of 1)."""

    return os.cpu_count() or 1


class LlvmenvConfig(BaseModel):
    """Settings that apply to every entry."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    download_timeout: float = Field(default=DEFAULT_DOWNLOAD_TIMEOUT, gt=0)
    existing_source: ExistingSourcePolicy = ExistingSourcePolicy.SKIP
    jobs: int | None = Field(default=None, ge=1)

    def resolved_jobs(self) -> int:
        return self.jobs if self.jobs is not None else default_parallel_jobs()

    def with_overrides(self, **overrides: Any) -> LlvmenvConfig:
        """Return a copy where every non-``None`` override replaces the stored value."""

        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        try:
            return LlvmenvConfig.model_validate({**self.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid option: {exc}") from exc


def load_config(path: Path) -> LlvmenvConfig:
    """Load :class:`LlvmenvConfig` from *path*, returning defaults when it is absent.

    Raises:
        ConfigError: If the document is not valid TOML or fails validation.
    """

    if not path.exists():
        return LlvmenvConfig()
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    try:
        return LlvmenvConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc


__all__ = ["LlvmenvConfig", "default_parallel_jobs", "load_config"]
