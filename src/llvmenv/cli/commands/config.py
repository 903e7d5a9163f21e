# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI commands creating and editing ``entry.toml``."""

from __future__ import annotations

import os
import shlex

import typer

from ...catalog import init_entry_document
from ...process_utils import run_command
from ..shared import CLIError, build_cli_logger, exit_on_error, get_state


def init_command(ctx: typer.Context) -> None:
    """Create a commented entry.toml in the configuration directory."""

    state = get_state(ctx)
    logger = build_cli_logger(emoji=state.use_emoji)
    with exit_on_error(logger):
        path = init_entry_document(state.paths.entry_toml)
    logger.ok(f"Created {path}")


def edit_command(ctx: typer.Context) -> None:
    """Open entry.toml in $EDITOR."""

    state = get_state(ctx)
    logger = build_cli_logger(emoji=state.use_emoji)
    with exit_on_error(logger):
        editor = os.environ.get("EDITOR", "").strip()
        if not editor:
            raise CLIError("EDITOR environment variable is not set")
        path = state.paths.entry_toml
        if not path.exists():
            raise CLIError(f"{path} does not exist; run `llvmenv init` first")
        run_command([*shlex.split(editor), str(path)])


def register(app: typer.Typer) -> None:
    app.command("init")(init_command)
    app.command("edit")(edit_command)


__all__ = ["edit_command", "init_command", "register"]
