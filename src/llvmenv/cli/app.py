# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared options."""

from __future__ import annotations

from typing import Annotated

import typer

from .. import __version__
from ..logging import configure_logging, set_emoji
from ..paths import AppPaths
from .commands import register_commands
from .shared import CLIState

app = typer.Typer(
    name="llvmenv",
    help="Manage multiple LLVM/Clang builds.",
    no_args_is_help=True,
    add_completion=False,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"llvmenv {__version__}")
        raise typer.Exit()


VERBOSE_OPTION = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug diagnostics on stderr."),
]
EMOJI_OPTION = Annotated[
    bool,
    typer.Option("--emoji/--no-emoji", help="Toggle emoji in CLI output."),
]
VERSION_OPTION = Annotated[
    bool,
    typer.Option("--version", callback=_print_version, is_eager=True, help="Show the version and exit."),
]


@app.callback()
def main(
    ctx: typer.Context,
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
    version: VERSION_OPTION = False,
) -> None:
    """Manage multiple LLVM/Clang builds."""

    configure_logging(verbose=verbose)
    set_emoji(emoji)
    ctx.obj = CLIState(paths=AppPaths.from_environment(), use_emoji=emoji, verbose=verbose)


register_commands(app)

__all__ = ["app"]
