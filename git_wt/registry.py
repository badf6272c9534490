"""Read the worktrees git currently knows about."""

from __future__ import annotations

from pathlib import Path

from . import git
from .models import RepositoryContext, Worktree
from .runner import CommandRunner

_BRANCH_PREFIX = "refs/heads/"


def parse_worktree_records(text: str) -> list[Worktree]:
    """Parse every record of ``git worktree list --porcelain`` output.

    A record starts at a ``worktree <path>`` line and runs until the next one.
    Detached records have no branch; the bare store carries ``is_bare``.
    """
    records: list[Worktree] = []
    path: Path | None = None
    branch: str | None = None
    bare = False
    for raw in text.splitlines():
        line = raw.strip()
        key, _, value = line.partition(" ")
        if key == "worktree":
            if path is not None:
                records.append(Worktree(path=path, branch=branch, is_bare=bare))
            path, branch, bare = Path(value.strip()), None, False
        elif path is None:
            continue
        elif key == "branch":
            branch = _sanitize_branch(value)
        elif key == "bare":
            bare = True
    if path is not None:
        records.append(Worktree(path=path, branch=branch, is_bare=bare))
    return records


def parse_worktree_porcelain(text: str) -> list[Worktree]:
    """Return only records that have a branch and are not the bare store."""
    return [record for record in parse_worktree_records(text) if record.branch and not record.is_bare]


def list_worktrees(runner: CommandRunner, ctx: RepositoryContext) -> list[Worktree]:
    """Query git for the user-facing worktrees of ``ctx``.

    Always re-reads git; the entry for the main repository is dropped even
    when git does not mark it bare.
    """
    output = git.worktree_list_porcelain(runner, ctx.main_repo_path)
    main = _normalize(ctx.main_repo_path)
    return [entry for entry in parse_worktree_porcelain(output) if _normalize(entry.path) != main]


def find_worktree(worktrees: list[Worktree], token: str) -> Worktree | None:
    """Match ``token`` against branch names first, then path suffixes."""
    for entry in worktrees:
        if entry.branch == token:
            return entry
    suffix = "/" + token.strip("/")
    for entry in worktrees:
        if entry.path.as_posix().endswith(suffix):
            return entry
    return None


def _sanitize_branch(value: str) -> str:
    stripped = value.strip()
    if stripped.startswith(_BRANCH_PREFIX):
        return stripped[len(_BRANCH_PREFIX) :]
    return stripped


def _normalize(path: Path) -> Path:
    return path.expanduser().resolve()


__all__ = ["parse_worktree_records", "parse_worktree_porcelain", "list_worktrees", "find_worktree"]
