# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI command checking out, configuring and installing one entry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import typer

from ...catalog import EntryCatalog
from ...config import LlvmenvConfig, load_config
from ...fetch import ExistingSourcePolicy
from ...paths import AppPaths
from ..shared import CLILogger, build_cli_logger, exit_on_error, get_state

NAME_ARGUMENT = Annotated[
    str,
    typer.Argument(help="Entry name or version requirement such as '17' or '>=16.0.0, <17.0.0'."),
]
UPDATE_OPTION = Annotated[
    bool,
    typer.Option("--update", "-u", help="Update remote sources (git pull / svn update) before building."),
]
CLEAN_OPTION = Annotated[
    bool,
    typer.Option("--clean", "-c", help="Remove the build directory before configuring."),
]
DISCARD_OPTION = Annotated[
    bool,
    typer.Option("--discard", "-d", help="Remove the cached remote sources before checkout."),
]
BUILDER_OPTION = Annotated[
    str | None,
    typer.Option("--builder", "-G", help="CMake generator: Platform, Makefile, Ninja, VisualStudio (vs)."),
]
NPROC_OPTION = Annotated[
    int | None,
    typer.Option("--nproc", "-j", min=1, help="Number of parallel build jobs (default: CPU count)."),
]
BUILD_TYPE_OPTION = Annotated[
    str | None,
    typer.Option("--build-type", "-t", help="CMAKE_BUILD_TYPE: Debug, Release, RelWithDebInfo, MinSizeRel."),
]
SKIP_CHECKOUT_OPTION = Annotated[
    bool,
    typer.Option("--skip-checkout", help="Build the sources already on disk without fetching."),
]
TIMEOUT_OPTION = Annotated[
    float | None,
    typer.Option("--timeout", min=0.001, help="Seconds allowed for connecting to and reading from download servers."),
]
EXISTING_OPTION = Annotated[
    ExistingSourcePolicy | None,
    typer.Option("--existing", case_sensitive=False, help="What to do when the source directory is not empty."),
]


@dataclass(slots=True)
class BuildEntryOptions:
    """Normalised CLI inputs for ``build-entry``."""

    name: str
    update: bool = False
    clean: bool = False
    discard: bool = False
    builder: str | None = None
    build_type: str | None = None
    skip_checkout: bool = False
    nproc: int | None = None
    timeout: float | None = None
    existing: ExistingSourcePolicy | None = None


def resolve_build_config(paths: AppPaths, options: BuildEntryOptions) -> LlvmenvConfig:
    """Merge ``config.toml`` with the command-line overrides."""

    return load_config(paths.config_toml).with_overrides(
        jobs=options.nproc,
        download_timeout=options.timeout,
        existing_source=options.existing,
    )


def run_build_entry(paths: AppPaths, options: BuildEntryOptions, *, logger: CLILogger) -> None:
    """Resolve the entry named in *options* and carry out every requested step."""

    config = resolve_build_config(paths, options)
    entry = EntryCatalog.load(paths).resolve(options.name)
    logger.info(f"Entry: {entry.name}")
    if options.builder is not None:
        entry.set_builder(options.builder)
    if options.build_type is not None:
        entry.set_build_type(options.build_type)
    if options.discard:
        entry.clean_cache_dir()
    if options.skip_checkout:
        logger.info("Skipping checkout")
    else:
        entry.checkout(timeout=config.download_timeout, existing=config.existing_source)
    if options.update:
        entry.update()
    if options.clean:
        entry.clean_build_dir()
    entry.build(config.resolved_jobs())


def build_entry_command(
    ctx: typer.Context,
    name: NAME_ARGUMENT,
    update: UPDATE_OPTION = False,
    clean: CLEAN_OPTION = False,
    discard: DISCARD_OPTION = False,
    builder: BUILDER_OPTION = None,
    nproc: NPROC_OPTION = None,
    build_type: BUILD_TYPE_OPTION = None,
    skip_checkout: SKIP_CHECKOUT_OPTION = False,
    timeout: TIMEOUT_OPTION = None,
    existing: EXISTING_OPTION = None,
) -> None:
    """Check out, configure and install an entry into its prefix."""

    state = get_state(ctx)
    logger = build_cli_logger(emoji=state.use_emoji)
    options = BuildEntryOptions(
        name=name,
        update=update,
        clean=clean,
        discard=discard,
        builder=builder,
        build_type=build_type,
        skip_checkout=skip_checkout,
        nproc=nproc,
        timeout=timeout,
        existing=existing,
    )
    with exit_on_error(logger):
        run_build_entry(state.paths, options, logger=logger)


def register(app: typer.Typer) -> None:
    app.command("build-entry")(build_entry_command)


__all__ = ["BuildEntryOptions", "build_entry_command", "register", "resolve_build_config", "run_build_entry"]
