"""End-to-end tests for the Typer commands with scripted collaborators."""

from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from git_wt.cli import Services, _worktree_options, app
from git_wt.config import UserConfig
from git_wt.models import Worktree

from ._fakes import ABORT, FakePrompter, FakeRunner, console_text, make_worktree_dir, quiet_console

REPO_VIEW = json.dumps({"owner": {"login": "acme"}, "name": "app", "defaultBranchRef": {"name": "main"}})
ISSUE_42 = json.dumps(
    {"number": 42, "title": "Crash on empty input", "url": "https://github.com/acme/app/issues/42"}
)


class CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.main = self.root / "app"
        (self.main / ".git").mkdir(parents=True)
        self.trees = self.root / "app-worktrees"
        self.feature = self.trees / "fix-bug"

        self.runner = FakeRunner()
        self.runner.on("git", "rev-parse", "--show-toplevel", output=str(self.main))
        self.runner.on("gh", "repo", "view", "--json", output=REPO_VIEW)
        self.runner.on(
            "git",
            "worktree",
            "list",
            "--porcelain",
            output=(
                f"worktree {self.main}\nHEAD aaa\nbranch refs/heads/main\n\n"
                f"worktree {self.feature}\nHEAD bbb\nbranch refs/heads/fix-bug\n"
            ),
        )
        self.runner.on("git", "worktree", "add", effect=make_worktree_dir)
        self.runner.on("gh", "issue", "list", output="[]")
        self.runner.on("gh", "pr", "list", output="[]")
        self.console = quiet_console()
        self.err_console = quiet_console()

        env = mock.patch.dict(os.environ, {"SHELL": "/bin/sh", "WT_ASSISTANT": "assist"})
        env.start()
        self.addCleanup(env.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def invoke(self, args: list[str], prompter: FakePrompter | None = None):
        services = Services(
            runner=self.runner,
            prompter=prompter or FakePrompter(),
            console=self.console,
            err_console=self.err_console,
            user_config=UserConfig(),
            cwd=self.main,
        )
        return CliRunner().invoke(app, args, obj=services)

    @property
    def output(self) -> str:
        return console_text(self.console)

    @property
    def errors(self) -> str:
        return console_text(self.err_console)


class ListCommandTests(CliTestCase):
    def test_table_joins_pull_request_status(self) -> None:
        self.runner.on(
            "gh",
            "pr",
            "list",
            output=json.dumps(
                [{"number": 5, "title": "Fix", "headRefName": "fix-bug", "statusCheckRollup": [{"conclusion": "SUCCESS"}]}]
            ),
        )

        result = self.invoke(["ls"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("fix-bug", self.output)
        self.assertIn("#5 ✓", self.output)

    def test_pull_request_failure_degrades_to_no_pr(self) -> None:
        self.runner.fail("gh", "pr", "list")

        result = self.invoke(["ls"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("(no PR)", self.output)

    def test_json_output(self) -> None:
        result = self.invoke(["ls", "--json"])

        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(self.output)
        self.assertEqual(payload, [{"branch": "fix-bug", "path": str(self.feature), "pr": None, "status": None}])

    def test_list_alias(self) -> None:
        result = self.invoke(["list"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("fix-bug", self.output)

    def test_remote_lookup_failure_is_reported(self) -> None:
        self.runner.fail("gh", "repo", "view", "--json")

        result = self.invoke(["ls"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", self.errors)
        self.assertIn("Failed to get repo info from GitHub", self.errors)
        self.assertEqual(self.runner.count("git", "worktree"), 0)

    def test_undecodable_pattern_file_is_reported(self) -> None:
        self.trees.mkdir()
        (self.trees / ".wtinclude").write_bytes(b"\xff\xfe.env\n")

        result = self.invoke(["ls"])

        self.assertEqual(result.exit_code, 1)
        self.assertIsInstance(result.exception, SystemExit)
        self.assertIn("Error:", self.errors)
        self.assertIn(".wtinclude", self.errors)


class RemoveCommandTests(CliTestCase):
    def test_declined_confirmation_removes_nothing(self) -> None:
        result = self.invoke(["rm", "fix-bug"], FakePrompter(confirms=[False]))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Cancelled.", self.output)
        self.assertEqual(self.runner.count("git", "worktree", "remove"), 0)

    def test_confirmed_removal(self) -> None:
        prompter = FakePrompter(confirms=[True])

        result = self.invoke(["rm", "fix-bug"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(prompter.messages, ["Remove fix-bug?"])
        self.assertEqual(
            self.runner.matching("git", "worktree", "remove"),
            [("git", "worktree", "remove", "--force", str(self.feature))],
        )

    def test_pick_worktree_to_remove(self) -> None:
        prompter = FakePrompter(selections=[0], confirms=[True])

        result = self.invoke(["remove"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual([option.label for option in prompter.offered[0]], ["fix-bug"])
        self.assertEqual(self.runner.count("git", "worktree", "remove"), 1)

    def test_unknown_name(self) -> None:
        result = self.invoke(["rm", "nope"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Worktree not found: nope", self.errors)


class AddCommandTests(CliTestCase):
    def test_no_shell_prints_path(self) -> None:
        result = self.invoke(["--no-shell", "add", "new-thing"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(str(self.trees / "new-thing"), self.output)
        self.assertEqual(self.runner.streams, [])
        self.assertEqual(self.runner.count("git", "push", "-u", "origin", "new-thing"), 1)

    def test_shell_exit_status_is_propagated(self) -> None:
        self.runner.on("/bin/sh", returncode=3)

        result = self.invoke(["add", "new-thing"])

        self.assertEqual(result.exit_code, 3)
        self.assertEqual(self.runner.streams, [(("/bin/sh",), self.trees / "new-thing")])

    def test_existing_worktree_fails(self) -> None:
        self.feature.mkdir(parents=True)

        result = self.invoke(["--no-shell", "add", "fix-bug"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Already exists", self.errors)

    def test_issue_is_handed_to_assistant_before_shell(self) -> None:
        self.runner.fail("gh", "pr", "view")
        self.runner.on("gh", "issue", "view", "42", output=ISSUE_42)

        result = self.invoke(["add", "#42"])

        self.assertEqual(result.exit_code, 0, result.output)
        target = self.trees / "42-crash-on-empty-input"
        self.assertEqual(
            self.runner.streams,
            [
                (
                    (
                        "assist",
                        "--permission-mode",
                        "plan",
                        "Investigate this issue and see how we can fix it: https://github.com/acme/app/issues/42",
                    ),
                    target,
                ),
                (("/bin/sh",), target),
            ],
        )

    def test_no_assistant_flag(self) -> None:
        self.runner.fail("gh", "pr", "view")
        self.runner.on("gh", "issue", "view", "42", output=ISSUE_42)

        result = self.invoke(["add", "#42", "--no-assistant"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual([command[0] for command, _ in self.runner.streams], ["/bin/sh"])

    def test_interactive_custom_branch(self) -> None:
        prompter = FakePrompter(selections=[0], texts=["my-branch"], confirms=[False])

        result = self.invoke(["--no-shell", "add"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(prompter.messages, ["Select issue, PR, or create custom:", "Branch name:", "Create draft PR?"])
        self.assertTrue((self.trees / "my-branch").is_dir())
        self.assertEqual(self.runner.count("gh", "pr", "create"), 0)

    def test_interactive_pick_issue(self) -> None:
        self.runner.on("gh", "issue", "list", output=json.dumps([json.loads(ISSUE_42)]))
        prompter = FakePrompter(selections=[lambda option: option.label.startswith("[Issue] #42")])

        result = self.invoke(["--no-shell", "add"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue((self.trees / "42-crash-on-empty-input").is_dir())


class PickerTests(CliTestCase):
    def test_cancelled_picker_exits_cleanly(self) -> None:
        result = self.invoke([], FakePrompter(selections=[ABORT]))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Cancelled.", self.output)
        self.assertEqual(self.runner.streams, [])

    def test_pick_existing_worktree(self) -> None:
        prompter = FakePrompter(selections=[1])

        result = self.invoke(["--no-shell"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(prompter.offered[0][0].label, "+ Create new")
        self.assertIn(str(self.feature), self.output)

    def test_create_new_from_picker(self) -> None:
        prompter = FakePrompter(selections=[0, 0], texts=["from-picker"], confirms=[False])

        result = self.invoke(["--no-shell"], prompter)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue((self.trees / "from-picker").is_dir())


class MiscCommandTests(CliTestCase):
    def test_ci_without_pull_request(self) -> None:
        self.runner.fail("gh", "pr", "view")

        result = self.invoke(["ci"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("No PR for current branch", self.errors)

    def test_sync_streams_in_current_directory(self) -> None:
        result = self.invoke(["sync"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            self.runner.streams,
            [(("git", "fetch", "origin", "main"), self.main), (("git", "rebase", "origin/main"), self.main)],
        )
        self.assertIn("Synced!", self.output)

    def test_init_skips_repository_resolution(self) -> None:
        self.runner.on("git", "symbolic-ref", "HEAD", output="refs/heads/main")

        result = self.invoke(["--no-shell", "init", "https://github.com/acme/widgets.git"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.runner.count("git", "rev-parse"), 0)
        self.assertEqual(self.runner.count("gh"), 0)
        self.assertIn(str(self.main / "widgets" / "main"), self.output)

    def test_clean_uses_current_pull_request(self) -> None:
        self.runner.on("gh", "pr", "view", output=json.dumps({"number": 11, "title": "T", "headRefName": "fix-bug"}))

        result = self.invoke(["clean"])

        self.assertEqual(result.exit_code, 0, result.output)
        command, cwd = self.runner.streams[0]
        self.assertEqual(command[:2], ("assist", "--print"))
        self.assertIn("Check PR #11 status", command[2])
        self.assertEqual(cwd, self.main)

    def test_worktree_options_label_by_branch(self) -> None:
        worktrees = [
            Worktree(path=Path("/w/app-worktrees/fix"), branch="fix"),
            Worktree(path=Path("/w/app-worktrees/detached"), branch=None),
        ]
        options = _worktree_options(worktrees)
        self.assertEqual([option.label for option in options], ["fix", "detached"])
        self.assertEqual(options[0].display, "fix · /w/app-worktrees/fix")
        self.assertIs(options[1].value, worktrees[1])


if __name__ == "__main__":
    unittest.main()
