"""Tests for reading git's worktree list."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from git_wt.registry import find_worktree, list_worktrees, parse_worktree_porcelain, parse_worktree_records
from git_wt.models import Worktree

from ._fakes import FakeRunner, make_context

BARE_LISTING = """\
worktree /work/app/repo.git
bare

worktree /work/app/main
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /work/app/feat-x
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feat/x

worktree /work/app/detached
HEAD 3333333333333333333333333333333333333333
detached
"""


class ParseWorktreePorcelainTests(unittest.TestCase):
    def test_keeps_only_branch_records_without_bare_marker(self) -> None:
        text = "worktree /p1\nbranch refs/heads/b1\nworktree /p2\nbare\n"
        self.assertEqual(parse_worktree_porcelain(text), [Worktree(path=Path("/p1"), branch="b1")])

    def test_full_listing(self) -> None:
        entries = parse_worktree_porcelain(BARE_LISTING)
        self.assertEqual(
            [(str(entry.path), entry.branch) for entry in entries],
            [("/work/app/main", "main"), ("/work/app/feat-x", "feat/x")],
        )

    def test_records_keep_bare_and_detached_entries(self) -> None:
        records = parse_worktree_records(BARE_LISTING)
        self.assertEqual(len(records), 4)
        self.assertTrue(records[0].is_bare)
        self.assertIsNone(records[3].branch)

    def test_empty_output(self) -> None:
        self.assertEqual(parse_worktree_porcelain(""), [])

    def test_records_without_blank_separators(self) -> None:
        text = "worktree /a\nHEAD abc\nbranch refs/heads/one\nworktree /b\nHEAD def\nbranch refs/heads/two"
        self.assertEqual([entry.branch for entry in parse_worktree_porcelain(text)], ["one", "two"])


class ListWorktreesTests(unittest.TestCase):
    def test_excludes_main_repository_even_when_not_bare(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            main = root / "app"
            ctx = make_context(root / "app-worktrees", main_repo_path=main)
            runner = FakeRunner()
            runner.on(
                "git",
                "worktree",
                "list",
                output=(
                    f"worktree {main}\nbranch refs/heads/main\n\n"
                    f"worktree {root / 'app-worktrees' / 'fix'}\nbranch refs/heads/fix\n"
                ),
            )

            entries = list_worktrees(runner, ctx)

        self.assertEqual([entry.branch for entry in entries], ["fix"])
        self.assertEqual(runner.calls[0][1], main)

    def test_requeries_on_every_call(self) -> None:
        ctx = make_context(Path("/nowhere/app-worktrees"))
        runner = FakeRunner()
        list_worktrees(runner, ctx)
        list_worktrees(runner, ctx)
        self.assertEqual(runner.count("git", "worktree", "list", "--porcelain"), 2)


class FindWorktreeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.entries = [
            Worktree(path=Path("/w/app-worktrees/feat-x"), branch="feat/x"),
            Worktree(path=Path("/w/app-worktrees/fix"), branch="fix"),
        ]

    def test_exact_branch_match(self) -> None:
        self.assertIs(find_worktree(self.entries, "feat/x"), self.entries[0])

    def test_path_suffix_match(self) -> None:
        self.assertIs(find_worktree(self.entries, "feat-x"), self.entries[0])

    def test_no_partial_name_match(self) -> None:
        self.assertIsNone(find_worktree(self.entries, "eat-x"))
        self.assertIsNone(find_worktree(self.entries, "missing"))


if __name__ == "__main__":
    unittest.main()
