# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI command listing the available entries."""

from __future__ import annotations

import typer

from ...catalog import EntryCatalog
from ..shared import build_cli_logger, exit_on_error, get_state


def entries_command(ctx: typer.Context) -> None:
    """List entries: user entries from entry.toml first, then official releases."""

    state = get_state(ctx)
    logger = build_cli_logger(emoji=state.use_emoji)
    with exit_on_error(logger):
        catalog = EntryCatalog.load(state.paths)
    for name in catalog.names():
        logger.echo(name)


def register(app: typer.Typer) -> None:
    app.command("entries")(entries_command)


__all__ = ["entries_command", "register"]
