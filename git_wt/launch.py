"""Hand the terminal over to a shell or the coding assistant."""

from __future__ import annotations

from pathlib import Path

from .config import assistant_executable, shell_command
from .runner import CommandRunner

ASSISTANT_PLAN_ARGS = ["--permission-mode", "plan"]


def open_shell(runner: CommandRunner, path: Path) -> int:
    return runner.stream(shell_command(), cwd=path)


def issue_prompt(issue_url: str) -> str:
    return f"Investigate this issue and see how we can fix it: {issue_url}"


def clean_prompt(pr_number: int) -> str:
    return (
        f"Check PR #{pr_number} status:\n"
        f"1. Run: gh pr view {pr_number} --json statusCheckRollup,commits\n"
        "2. If CI passing and >1 commit, squash commits interactively\n"
        "3. If CI failing, report the failures\n"
        '4. If already 1 commit, report "Already clean"'
    )


def launch_assistant(runner: CommandRunner, path: Path, prompt: str | None = None) -> int:
    """Start the assistant in plan mode inside ``path``, attached to the terminal."""
    command = [assistant_executable(), *ASSISTANT_PLAN_ARGS]
    if prompt:
        command.append(prompt)
    return runner.stream(command, cwd=path)


def run_assistant_once(runner: CommandRunner, path: Path, prompt: str) -> int:
    return runner.stream([assistant_executable(), "--print", prompt], cwd=path)


__all__ = ["open_shell", "issue_prompt", "clean_prompt", "launch_assistant", "run_assistant_once"]
