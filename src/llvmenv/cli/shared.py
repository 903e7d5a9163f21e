# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (logging, errors, global state)."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer

from ..errors import LlvmenvError
from ..logging import fail as core_fail
from ..logging import info as core_info
from ..logging import ok as core_ok
from ..logging import warn as core_warn
from ..paths import AppPaths


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around project logging helpers respecting CLI emoji settings."""

    use_emoji: bool

    def fail(self, message: str) -> None:
        core_fail(message, use_emoji=self.use_emoji)

    def warn(self, message: str) -> None:
        core_warn(message, use_emoji=self.use_emoji)

    def ok(self, message: str) -> None:
        core_ok(message, use_emoji=self.use_emoji)

    def info(self, message: str) -> None:
        core_info(message, use_emoji=self.use_emoji)

    def echo(self, message: str) -> None:
        """Write ``message`` to stdout using Typer's echo helper."""

        typer.echo(message)


def build_cli_logger(*, emoji: bool) -> CLILogger:
    """Return a ``CLILogger`` configured for the provided emoji preference."""

    return CLILogger(use_emoji=emoji)


@dataclass(slots=True)
class CLIState:
    """Options collected by the application callback for every command."""

    paths: AppPaths
    use_emoji: bool = True
    verbose: bool = False


def get_state(ctx: typer.Context) -> CLIState:
    """Return the :class:`CLIState` stored by the application callback."""

    state = ctx.find_root().obj
    if isinstance(state, CLIState):
        return state
    state = CLIState(paths=AppPaths.from_environment())
    ctx.find_root().obj = state
    return state


@contextmanager
def exit_on_error(logger: CLILogger) -> Iterator[None]:
    """Report library and CLI failures through *logger* and exit non-zero."""

    try:
        yield
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except LlvmenvError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc


__all__ = [
    "CLIError",
    "CLILogger",
    "CLIState",
    "build_cli_logger",
    "exit_on_error",
    "get_state",
]
