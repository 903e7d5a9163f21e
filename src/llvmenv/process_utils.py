# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution."""

from __future__ import annotations

import logging
import shlex
import shutil

# Bandit: subprocess usage is intentional; every external tool (cmake, git, svn)
# goes through this wrapper with argument lists and ``shell=False``.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import CommandError, ExecutableNotFoundError

if TYPE_CHECKING:
    from subprocess import CompletedProcess as _CompletedProcess  # nosec B404

LOGGER = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = 124


def which(executable: str) -> Path | None:
    """Return the resolved path of ``executable`` on ``PATH`` or ``None``."""

    resolved = shutil.which(executable)
    return Path(resolved) if resolved is not None else None


def _normalize_args(args: Sequence[str]) -> list[str]:
    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    resolved = which(head)
    if resolved is None:
        raise ExecutableNotFoundError(head)
    return [str(resolved), *rest]


def _ensure_text(value: str | bytes | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.decode(errors="ignore")


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    capture_output: bool = False,
    timeout: float | None = None,
    discard_stdin: bool = False,
) -> _CompletedProcess[str]:
    """Execute *args* after normalising the executable path.

    Args:
        args: Command and arguments; the executable is looked up on ``PATH``.
        cwd: Working directory for the child process.
        env: Complete environment for the child process when provided.
        check: Raise :class:`CommandError` on a non-zero exit status.
        capture_output: Capture stdout/stderr instead of inheriting them.
        timeout: Seconds after which the child is killed.
        discard_stdin: Attach ``/dev/null`` to the child's stdin.

    Returns:
        CompletedProcess[str]: Completed process with text output.

    Raises:
        CommandError: If ``check`` is true and the command fails.
        ExecutableNotFoundError: If the executable cannot be located.
    """

    normalized = _normalize_args(args)
    LOGGER.debug("Running: %s (cwd=%s)", shlex.join(args), cwd or ".")

    try:
        # Bandit: commands are built from entry settings as argument lists.
        completed: _CompletedProcess[str] = subprocess.run(  # nosec B603
            normalized,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            check=False,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            stdin=subprocess.DEVNULL if discard_stdin else None,
        )
    except subprocess.TimeoutExpired as exc:
        stderr = _ensure_text(exc.stderr)
        timeout_msg = f"Command timed out after {timeout:.1f}s" if timeout is not None else "Command timed out"
        completed = subprocess.CompletedProcess(
            args=normalized,
            returncode=TIMEOUT_RETURNCODE,
            stdout=_ensure_text(exc.stdout) or "",
            stderr=f"{stderr}\n{timeout_msg}" if stderr else timeout_msg,
        )

    if check and completed.returncode != 0:
        raise CommandError(
            list(args),
            completed.returncode,
            completed.stderr if isinstance(completed.stderr, str) else None,
        )
    return completed


__all__ = ["TIMEOUT_RETURNCODE", "run_command", "which"]
