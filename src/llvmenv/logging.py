# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support."""

from __future__ import annotations

import logging
import sys

from rich.text import Text

from .console import detect_tty, get_console

_VERBOSE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_HANDLER: logging.Handler | None = None
_EMOJI = True


def set_emoji(enable: bool) -> None:
    """Set the process-wide default for emoji in status lines and progress bars."""

    global _EMOJI
    _EMOJI = enable


def emoji_enabled() -> bool:
    return _EMOJI


def emoji(symbol: str, enable: bool) -> str:
    """Return *symbol* when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


def _print_line(
    msg: str,
    *,
    symbol: str,
    style: str | None,
    use_emoji: bool | None,
    use_color: bool | None = None,
) -> None:
    use_emoji = _EMOJI if use_emoji is None else use_emoji
    color_enabled = detect_tty() if use_color is None else use_color
    console = get_console(color=color_enabled, emoji=use_emoji)
    text = Text(f"{emoji(symbol, use_emoji)}{msg}")
    if style and color_enabled:
        text.stylize(style)
    console.print(text)


def info(msg: str, *, use_emoji: bool | None = None, use_color: bool | None = None) -> None:
    """Emit an informational message."""

    _print_line(msg, symbol="ℹ️ ", style="cyan", use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool | None = None, use_color: bool | None = None) -> None:
    """Emit a success message."""

    _print_line(msg, symbol="✅ ", style="green", use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool | None = None, use_color: bool | None = None) -> None:
    """Emit a warning message."""

    _print_line(msg, symbol="⚠️ ", style="yellow", use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool | None = None, use_color: bool | None = None) -> None:
    """Emit an error message."""

    _print_line(msg, symbol="❌ ", style="red", use_emoji=use_emoji, use_color=use_color)


def configure_logging(*, verbose: bool) -> None:
    """Attach a stderr handler to the ``llvmenv`` logger hierarchy.

    Debug records (commands run, resolver decisions, tolerated extraction
    failures) are only shown when *verbose* is set; warnings always are.
    """

    global _HANDLER
    logger = logging.getLogger("llvmenv")
    if _HANDLER is not None:
        logger.removeHandler(_HANDLER)
    _HANDLER = logging.StreamHandler(stream=sys.stderr)
    _HANDLER.setFormatter(logging.Formatter(_VERBOSE_FORMAT))
    logger.addHandler(_HANDLER)
    logger.propagate = False
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


__all__ = ["configure_logging", "emoji", "emoji_enabled", "fail", "info", "ok", "set_emoji", "warn"]
