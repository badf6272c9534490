"""Shared dataclasses used throughout the CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class Layout(str, enum.Enum):
    """Directory conventions a repository can be arranged in."""

    BARE_CONTAINER = "bare-container"
    NESTED = "nested"
    SIBLING_SUFFIX = "sibling-suffix"


class CheckStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILING = "failing"
    RUNNING = "running"

    @property
    def symbol(self) -> str:
        return _STATUS_SYMBOLS[self]


_STATUS_SYMBOLS = {
    CheckStatus.PENDING: "?",
    CheckStatus.SUCCESS: "✓",
    CheckStatus.FAILING: "✗",
    CheckStatus.RUNNING: "…",
}

PASSING_CONCLUSIONS = frozenset({"SUCCESS", "NEUTRAL", "SKIPPED"})
FAILED_CONCLUSIONS = frozenset(
    {"FAILURE", "ERROR", "TIMED_OUT", "CANCELLED", "STARTUP_FAILURE", "ACTION_REQUIRED"}
)


def aggregate_checks(conclusions: tuple[str, ...] | list[str]) -> CheckStatus:
    """Collapse per-check outcomes into one status."""
    if not conclusions:
        return CheckStatus.PENDING
    normalized = [value.upper() for value in conclusions]
    if all(value in PASSING_CONCLUSIONS for value in normalized):
        return CheckStatus.SUCCESS
    if any(value in FAILED_CONCLUSIONS for value in normalized):
        return CheckStatus.FAILING
    return CheckStatus.RUNNING


@dataclass(frozen=True, slots=True)
class Topology:
    """The directory arrangement picked by one resolver probe."""

    layout: Layout
    main_repo_path: Path
    main_repo_name: str
    worktrees_path: Path
    seed_root: Path


@dataclass(frozen=True, slots=True)
class RepoIdentity:
    owner: str
    name: str
    default_branch: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class RepositoryContext:
    """Everything an invocation knows about the repository it runs against."""

    repo_root: Path | None
    main_repo_path: Path
    main_repo_name: str
    worktrees_path: Path
    owner: str
    name: str
    default_branch: str
    cwd: Path
    layout: Layout
    env_seed: Path | None = None
    propagate_patterns: tuple[str, ...] = ()

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class Worktree:
    path: Path
    branch: str | None
    is_bare: bool = False

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class PullRequestSummary:
    number: int
    title: str
    head_branch: str
    check_conclusions: tuple[str, ...] = ()
    author: str | None = None
    url: str | None = None

    @property
    def status(self) -> CheckStatus:
        return aggregate_checks(self.check_conclusions)


@dataclass(frozen=True, slots=True)
class Issue:
    number: int
    title: str
    url: str | None = None
    author: str | None = None


@dataclass(frozen=True, slots=True)
class PushResult:
    remote_name: str
    pushed_as_fork: bool
    fork_owner: str | None = None


@dataclass(slots=True)
class CreatedWorktree:
    """Outcome of a lifecycle operation that materialized a worktree."""

    path: Path
    branch: str
    push: PushResult | None = None
    pr_url: str | None = None
    issue_url: str | None = None
    warnings: list[str] = field(default_factory=list)


__all__ = [
    "Layout",
    "CheckStatus",
    "aggregate_checks",
    "Topology",
    "RepoIdentity",
    "RepositoryContext",
    "Worktree",
    "PullRequestSummary",
    "Issue",
    "PushResult",
    "CreatedWorktree",
]
