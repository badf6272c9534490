"""Worktree listings joined with pull-request and CI status."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.table import Table

from .exceptions import ReferenceNotFound
from .github import GitHubClient
from .models import CheckStatus, PullRequestSummary, Worktree

NO_PR = "(no PR)"

_STATUS_STYLES = {
    CheckStatus.SUCCESS: "green",
    CheckStatus.FAILING: "red",
    CheckStatus.RUNNING: "yellow",
    CheckStatus.PENDING: "dim",
}


@dataclass(frozen=True, slots=True)
class StatusRow:
    worktree: Worktree
    pull_request: PullRequestSummary | None

    @property
    def status(self) -> CheckStatus | None:
        return self.pull_request.status if self.pull_request else None

    @property
    def label(self) -> str:
        if self.pull_request is None:
            return NO_PR
        return f"#{self.pull_request.number} {self.pull_request.status.symbol}"


def join_status(worktrees: Sequence[Worktree], pull_requests: Sequence[PullRequestSummary]) -> list[StatusRow]:
    by_branch = {pr.head_branch: pr for pr in pull_requests}
    return [StatusRow(worktree=wt, pull_request=by_branch.get(wt.branch or "")) for wt in worktrees]


def render_status_table(rows: Sequence[StatusRow], console: Console) -> None:
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Branch", no_wrap=True)
    table.add_column("PR", no_wrap=True)
    table.add_column("Path")
    for row in rows:
        style = _STATUS_STYLES.get(row.status) if row.status else "dim"
        table.add_row(row.worktree.branch or "detached", f"[{style}]{row.label}[/{style}]", str(row.worktree.path))
    console.print(table)


def render_status_json(rows: Sequence[StatusRow], console: Console) -> None:
    payload = [
        {
            "branch": row.worktree.branch,
            "path": str(row.worktree.path),
            "pr": row.pull_request.number if row.pull_request else None,
            "status": row.status.value if row.status else None,
        }
        for row in rows
    ]
    console.print_json(data=payload)


def show_ci(github: GitHubClient, console: Console, cwd: Path) -> int:
    """Print the current branch's PR and stream ``gh pr checks`` for it."""
    pull_request = github.current_pull_request(cwd)
    if pull_request is None:
        raise ReferenceNotFound("No PR for current branch")
    console.print(f"PR #{pull_request.number}: {pull_request.title}")
    if pull_request.url:
        console.print(pull_request.url)
    console.print("")
    return github.stream_checks(pull_request.number, cwd)


__all__ = ["StatusRow", "NO_PR", "join_status", "render_status_table", "render_status_json", "show_ci"]
