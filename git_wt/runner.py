"""Command execution capability shared by the git and gh wrappers."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

from .exceptions import BackendCommandFailed

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Protocol for anything able to run external commands."""

    def run(self, command: Sequence[str], *, cwd: Path | None = None) -> str:
        """Run ``command`` with captured output.

        Returns:
            Trimmed standard output.

        Raises:
            BackendCommandFailed: On a non-zero exit or a missing executable.
        """
        ...

    def stream(self, command: Sequence[str], *, cwd: Path | None = None) -> int:
        """Run ``command`` attached to the terminal and return its exit code."""
        ...


class SubprocessRunner:
    """Runs commands with :mod:`subprocess`, one at a time, without timeouts."""

    def run(self, command: Sequence[str], *, cwd: Path | None = None) -> str:
        args = list(command)
        logger.debug("Running command: %s (cwd=%s)", " ".join(args), cwd or ".")
        try:
            result = subprocess.run(
                args,
                cwd=str(cwd) if cwd else None,
                text=True,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise BackendCommandFailed(args, 127, stderr=str(exc)) from exc
        if result.returncode != 0:
            raise BackendCommandFailed(
                args,
                result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result.stdout.strip()

    def stream(self, command: Sequence[str], *, cwd: Path | None = None) -> int:
        args = list(command)
        logger.debug("Streaming command: %s (cwd=%s)", " ".join(args), cwd or ".")
        try:
            result = subprocess.run(args, cwd=str(cwd) if cwd else None, check=False)
        except FileNotFoundError as exc:
            raise BackendCommandFailed(args, 127, stderr=str(exc)) from exc
        return result.returncode


def run_optional(runner: CommandRunner, command: Sequence[str], *, cwd: Path | None = None) -> str | None:
    """Run a command whose failure only means "no answer"."""
    try:
        return runner.run(command, cwd=cwd)
    except BackendCommandFailed as exc:
        logger.debug("Ignoring failure: %s", exc)
        return None


__all__ = ["CommandRunner", "SubprocessRunner", "run_optional"]
