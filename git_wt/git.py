"""Thin wrappers around git CLI commands."""

from __future__ import annotations

from pathlib import Path

from .runner import CommandRunner, run_optional


def toplevel(runner: CommandRunner, path: Path) -> Path | None:
    output = run_optional(runner, ["git", "rev-parse", "--show-toplevel"], cwd=path)
    return Path(output) if output else None


def fetch(runner: CommandRunner, repo: Path, branch: str, remote: str = "origin") -> None:
    runner.run(["git", "fetch", remote, branch], cwd=repo)


def local_branch_exists(runner: CommandRunner, repo: Path, branch: str) -> bool:
    output = run_optional(runner, ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=repo)
    return output is not None


def worktree_list_porcelain(runner: CommandRunner, repo: Path) -> str:
    return runner.run(["git", "worktree", "list", "--porcelain"], cwd=repo)


def worktree_add_new(runner: CommandRunner, repo: Path, target: Path, branch: str, start_point: str) -> None:
    runner.run(["git", "worktree", "add", "-b", branch, str(target), start_point], cwd=repo)


def worktree_add_existing(runner: CommandRunner, repo: Path, target: Path, branch: str) -> None:
    runner.run(["git", "worktree", "add", str(target), branch], cwd=repo)


def worktree_add_tracking(runner: CommandRunner, repo: Path, target: Path, branch: str, remote_ref: str) -> None:
    runner.run(["git", "worktree", "add", "--track", "-b", branch, str(target), remote_ref], cwd=repo)


def worktree_remove(runner: CommandRunner, repo: Path, target: Path) -> None:
    runner.run(["git", "worktree", "remove", "--force", str(target)], cwd=repo)


def push_upstream(runner: CommandRunner, worktree: Path, remote: str, branch: str) -> None:
    runner.run(["git", "push", "-u", remote, branch], cwd=worktree)


def remote_names(runner: CommandRunner, worktree: Path) -> list[str]:
    output = runner.run(["git", "remote"], cwd=worktree)
    return [line.strip() for line in output.splitlines() if line.strip()]


def add_remote(runner: CommandRunner, worktree: Path, name: str, url: str) -> None:
    runner.run(["git", "remote", "add", name, url], cwd=worktree)


def clone_bare(runner: CommandRunner, url: str, target: Path) -> None:
    runner.run(["git", "clone", "--bare", url, str(target)], cwd=target.parent)


def configure_fetch_refspec(runner: CommandRunner, repo: Path, remote: str = "origin") -> None:
    runner.run(
        ["git", "config", f"remote.{remote}.fetch", f"+refs/heads/*:refs/remotes/{remote}/*"],
        cwd=repo,
    )


def fetch_all(runner: CommandRunner, repo: Path, remote: str = "origin") -> None:
    runner.run(["git", "fetch", remote], cwd=repo)


def head_branch(runner: CommandRunner, repo: Path) -> str:
    ref = runner.run(["git", "symbolic-ref", "HEAD"], cwd=repo)
    prefix = "refs/heads/"
    return ref[len(prefix) :] if ref.startswith(prefix) else ref.rsplit("/", 1)[-1]


__all__ = [
    "toplevel",
    "fetch",
    "local_branch_exists",
    "worktree_list_porcelain",
    "worktree_add_new",
    "worktree_add_existing",
    "worktree_add_tracking",
    "worktree_remove",
    "push_upstream",
    "remote_names",
    "add_remote",
    "clone_bare",
    "configure_fetch_refspec",
    "fetch_all",
    "head_branch",
]
