"""Tests for publishing branches with the fork fallback."""

from __future__ import annotations

import unittest
from pathlib import Path

from git_wt.exceptions import ForkPushFailed
from git_wt.github import GitHubClient
from git_wt.remotes import RemoteCoordinator, fork_url

from ._fakes import FakeRunner, make_context

WORKTREE = Path("/w/app-worktrees/fix-bug")


class RemoteCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = FakeRunner()
        self.github = GitHubClient(self.runner)
        self.coordinator = RemoteCoordinator(self.runner, self.github)
        self.ctx = make_context(Path("/w/app-worktrees"))
        self.runner.on("gh", "api", "user", output="octo\n")
        self.runner.on("git", "remote", output="origin")

    def test_primary_push_success_never_touches_fork(self) -> None:
        result = self.coordinator.ensure_pushable(self.ctx, WORKTREE, "fix-bug")

        self.assertEqual(result.remote_name, "origin")
        self.assertFalse(result.pushed_as_fork)
        self.assertEqual(self.runner.count("git", "push"), 1)
        self.assertEqual(self.runner.matching("git", "push"), [("git", "push", "-u", "origin", "fix-bug")])
        self.assertEqual(self.runner.count("gh"), 0)
        self.assertEqual(self.runner.count("git", "remote"), 0)

    def test_primary_failure_falls_back_to_new_fork(self) -> None:
        self.runner.fail("git", "push", "-u", "origin")
        self.runner.fail("gh", "repo", "view", "octo/app")

        result = self.coordinator.ensure_pushable(self.ctx, WORKTREE, "fix-bug")

        self.assertTrue(result.pushed_as_fork)
        self.assertEqual(result.remote_name, "fork")
        self.assertEqual(result.fork_owner, "octo")
        self.assertEqual(self.runner.matching("gh", "repo", "fork"), [("gh", "repo", "fork", "acme/app", "--clone=false")])
        self.assertEqual(
            self.runner.matching("git", "remote", "add"),
            [("git", "remote", "add", "fork", fork_url("octo", "app"))],
        )
        self.assertEqual(self.runner.count("git", "push", "-u", "fork", "fix-bug"), 1)

    def test_existing_fork_and_remote_are_reused(self) -> None:
        self.runner.fail("git", "push", "-u", "origin")
        self.runner.on("git", "remote", output="origin\nfork")

        result = self.coordinator.ensure_pushable(self.ctx, WORKTREE, "fix-bug")

        self.assertTrue(result.pushed_as_fork)
        self.assertEqual(self.runner.count("gh", "repo", "fork"), 0)
        self.assertEqual(self.runner.count("git", "remote", "add"), 0)

    def test_fork_push_failure_is_fatal_after_one_attempt(self) -> None:
        self.runner.fail("git", "push", "-u", "origin")
        self.runner.fail("git", "push", "-u", "fork")

        with self.assertRaises(ForkPushFailed):
            self.coordinator.ensure_pushable(self.ctx, WORKTREE, "fix-bug")

        self.assertEqual(self.runner.count("git", "push", "-u", "origin"), 1)
        self.assertEqual(self.runner.count("git", "push", "-u", "fork"), 1)

    def test_fork_creation_failure_is_reported_as_fork_push_failure(self) -> None:
        self.runner.fail("git", "push", "-u", "origin")
        self.runner.fail("gh", "repo", "view", "octo/app")
        self.runner.fail("gh", "repo", "fork")

        with self.assertRaises(ForkPushFailed):
            self.coordinator.ensure_pushable(self.ctx, WORKTREE, "fix-bug")
        self.assertEqual(self.runner.count("git", "push", "-u", "fork"), 0)

    def test_login_lookup_is_memoized(self) -> None:
        self.runner.fail("git", "push", "-u", "origin")

        self.coordinator.ensure_pushable(self.ctx, WORKTREE, "one")
        self.coordinator.ensure_pushable(self.ctx, WORKTREE, "two")

        self.assertEqual(self.runner.count("gh", "api", "user"), 1)


if __name__ == "__main__":
    unittest.main()
