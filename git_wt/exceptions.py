"""Custom error hierarchy for git-wt."""

from __future__ import annotations

from typing import Sequence


class GitWtError(RuntimeError):
    """Base error for the CLI."""


class ConfigError(GitWtError):
    """Raised when the user configuration file cannot be used."""


class NotARepository(GitWtError):
    """Raised when no supported repository layout surrounds the working directory."""


class AmbiguousTopology(GitWtError):
    """Raised when a checkout matches none of the layout conventions unambiguously."""


class RemoteLookupFailed(GitWtError):
    """Raised when the hosting platform cannot describe the repository."""


class AlreadyExists(GitWtError):
    """Raised when a worktree (or init container) destination is already taken."""

    def __init__(self, path) -> None:
        super().__init__(f"Already exists: {path}")
        self.path = path


class ReferenceNotFound(GitWtError):
    """Raised when an issue/PR number or worktree name does not resolve."""


class ForkPushFailed(GitWtError):
    """Raised when publishing through the fork fallback fails."""


class PRCreateFailed(GitWtError):
    """Raised when a draft pull request cannot be opened."""


class ValidationError(GitWtError):
    """Raised when user input fails validation."""


class UserAbort(GitWtError):
    """Raised when the user cancels an interactive flow."""


class BackendCommandFailed(GitWtError):
    """Raised when an underlying git/gh invocation fails."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"`{' '.join(self.command)}` failed (exit {returncode})"
        detail = _last_line(self.stderr) or _last_line(self.stdout)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


__all__ = [
    "GitWtError",
    "ConfigError",
    "NotARepository",
    "AmbiguousTopology",
    "RemoteLookupFailed",
    "AlreadyExists",
    "ReferenceNotFound",
    "ForkPushFailed",
    "PRCreateFailed",
    "ValidationError",
    "UserAbort",
    "BackendCommandFailed",
]
