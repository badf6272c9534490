"""Publishing new branches, falling back to a personal fork."""

from __future__ import annotations

import logging
from pathlib import Path

from . import git
from .exceptions import BackendCommandFailed, ForkPushFailed
from .github import GitHubClient
from .models import PushResult, RepositoryContext
from .runner import CommandRunner

logger = logging.getLogger(__name__)

PRIMARY_REMOTE = "origin"
FORK_REMOTE = "fork"


class RemoteCoordinator:
    def __init__(self, runner: CommandRunner, github: GitHubClient) -> None:
        self._runner = runner
        self._github = github

    def ensure_pushable(self, ctx: RepositoryContext, worktree_path: Path, branch: str) -> PushResult:
        """Push ``branch`` to ``origin``, or to the user's fork when that is refused.

        Any primary push failure is treated as missing push access. The fork
        path is tried once; if it fails too, :class:`ForkPushFailed` is raised.
        """
        try:
            git.push_upstream(self._runner, worktree_path, PRIMARY_REMOTE, branch)
            return PushResult(remote_name=PRIMARY_REMOTE, pushed_as_fork=False)
        except BackendCommandFailed as exc:
            logger.warning("No push access to %s (%s), using fork...", ctx.slug, exc)

        try:
            user = self._github.current_user()
            self._ensure_fork(ctx, user)
            self._ensure_fork_remote(ctx, worktree_path, user)
            git.push_upstream(self._runner, worktree_path, FORK_REMOTE, branch)
        except BackendCommandFailed as exc:
            raise ForkPushFailed(f"Unable to push '{branch}' through a fork: {exc}") from exc
        return PushResult(remote_name=FORK_REMOTE, pushed_as_fork=True, fork_owner=user)

    def _ensure_fork(self, ctx: RepositoryContext, user: str) -> None:
        if self._github.repo_exists(f"{user}/{ctx.name}"):
            return
        logger.info("Creating fork of %s for %s", ctx.slug, user)
        self._github.fork(ctx.slug)

    def _ensure_fork_remote(self, ctx: RepositoryContext, worktree_path: Path, user: str) -> None:
        if FORK_REMOTE in git.remote_names(self._runner, worktree_path):
            return
        git.add_remote(self._runner, worktree_path, FORK_REMOTE, fork_url(user, ctx.name))


def fork_url(user: str, name: str) -> str:
    return f"https://github.com/{user}/{name}.git"


__all__ = ["RemoteCoordinator", "PRIMARY_REMOTE", "FORK_REMOTE", "fork_url"]
