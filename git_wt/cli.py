"""Typer CLI entrypoint for git-wt."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import UserConfig, configure_logging, load_user_config
from .exceptions import BackendCommandFailed, GitWtError, ReferenceNotFound, UserAbort
from .github import GitHubClient
from .interactive import Option, Prompter
from .launch import clean_prompt, issue_prompt, launch_assistant, open_shell, run_assistant_once
from .lifecycle import WorktreeLifecycle, init_repository
from .models import CreatedWorktree, Issue, PullRequestSummary, RepositoryContext, Worktree
from .registry import find_worktree, list_worktrees
from .runner import CommandRunner, SubprocessRunner
from .status import join_status, render_status_json, render_status_table, show_ci
from .topology import resolve_context

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    help="Git worktrees with GitHub issue and PR awareness.",
)

T = TypeVar("T")


@dataclass(slots=True)
class Services:
    """External collaborators; tests pass their own through ``obj=``."""

    runner: CommandRunner = field(default_factory=SubprocessRunner)
    prompter: Prompter = field(default_factory=Prompter)
    console: Console = field(default_factory=Console)
    err_console: Console = field(default_factory=lambda: Console(stderr=True))
    user_config: UserConfig | None = None
    cwd: Path | None = None


@dataclass(slots=True)
class AppState:
    services: Services
    github: GitHubClient
    cwd: Path
    no_shell: bool = False
    context: RepositoryContext | None = None

    @property
    def console(self) -> Console:
        return self.services.console

    @property
    def runner(self) -> CommandRunner:
        return self.services.runner

    @property
    def prompter(self) -> Prompter:
        return self.services.prompter

    @property
    def repo(self) -> RepositoryContext:
        if self.context is None:  # pragma: no cover
            raise typer.Exit(1)
        return self.context

    def lifecycle(self) -> WorktreeLifecycle:
        return WorktreeLifecycle(self.runner, self.github, self.console)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"git-wt {__version__}")
        raise typer.Exit()


@contextmanager
def _handle_errors(state: AppState) -> Iterator[None]:
    try:
        yield
    except UserAbort as exc:
        logger.debug("Cancelled: %s", exc)
        state.console.print("Cancelled.")
        raise typer.Exit(0) from exc
    except GitWtError as exc:
        logger.debug("Command failed", exc_info=True)
        state.services.err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    no_shell: bool = typer.Option(
        False,
        "--no-shell",
        help="Print worktree paths instead of opening a shell (and skip the assistant).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the git-wt version and exit.",
    ),
) -> None:
    """Pick a worktree and open a shell in it when no command is given."""
    _ = version  # handled via callback
    configure_logging(verbose)
    services = ctx.obj if isinstance(ctx.obj, Services) else Services()
    state = AppState(
        services=services,
        github=GitHubClient(services.runner),
        cwd=services.cwd or Path.cwd(),
        no_shell=no_shell,
    )
    ctx.obj = state
    if ctx.invoked_subcommand == "init":
        return
    with _handle_errors(state):
        user_config = services.user_config or load_user_config()
        state.context = resolve_context(state.cwd, state.runner, state.github, user_config)
    if ctx.invoked_subcommand is None:
        _pick(state)


def _require_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):  # pragma: no cover
        raise typer.Exit(1)
    return state


@app.command(help="Clone a repository into a bare-store container with a 'main' worktree.")
def init(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Clone URL of the repository."),
    name: Optional[str] = typer.Argument(None, help="Container directory name (defaults to the repo name)."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        main_path = init_repository(state.runner, state.console, url, name, cwd=state.cwd)
        state.console.print(f"[green]Ready: {main_path}[/green]")
        _enter(state, main_path)


@app.command(help="Add a worktree: NAME (new branch), @BRANCH (remote branch) or #N (issue or PR).")
def add(
    ctx: typer.Context,
    ref: Optional[str] = typer.Argument(None, help="Branch name, @remote-branch, or #number. Omit to pick."),
    pr: bool = typer.Option(False, "--pr", help="Open a draft pull request for a new branch."),
    no_assistant: bool = typer.Option(False, "--no-assistant", help="Do not hand issues to the assistant."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        lifecycle = state.lifecycle()
        if ref:
            result = lifecycle.add(state.repo, ref, create_pr=pr)
        else:
            result = _interactive_add(state, lifecycle, create_pr=pr)
        _finish(state, result, hand_off=not no_assistant)


@app.command(help="List worktrees with their PR and CI status.")
def ls(
    ctx: typer.Context,
    json_: bool = typer.Option(False, "--json", help="Output JSON instead of a table."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        worktrees = list_worktrees(state.runner, state.repo)
        if not worktrees and not json_:
            state.console.print("No worktrees")
            return
        if json_:
            pull_requests = _pull_requests_or_empty(state) if worktrees else []
        else:
            with state.console.status("Fetching PR statuses…"):
                pull_requests = _pull_requests_or_empty(state)
        rows = join_status(worktrees, pull_requests)
        if json_:
            render_status_json(rows, state.console)
        else:
            render_status_table(rows, state.console)


@app.command(help="Remove a worktree by branch or directory name.")
def rm(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Branch or directory name. Omit to pick."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        worktrees = list_worktrees(state.runner, state.repo)
        if name:
            target = find_worktree(worktrees, name)
            if target is None:
                raise ReferenceNotFound(f"Worktree not found: {name}")
        elif not worktrees:
            state.console.print("No worktrees")
            return
        else:
            target = state.prompter.select("Remove worktree:", _worktree_options(worktrees))
        label = target.branch or target.name
        if not state.prompter.confirm(f"Remove {label}?"):
            raise UserAbort("Removal not confirmed.")
        state.lifecycle().remove(state.repo, target)
        state.console.print(f"[green]Removed: {label}[/green]")


@app.command(help="Rebase the current worktree onto the default branch.")
def sync(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        state.console.print(f"Syncing with {state.repo.default_branch}…")
        state.lifecycle().sync(state.repo)
        state.console.print("[green]Synced![/green]")


@app.command(help="Show CI status for the current branch's PR.")
def ci(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        returncode = show_ci(state.github, state.console, state.repo.cwd)
    if returncode != 0:
        raise typer.Exit(1)


@app.command("open", help="Launch the assistant in a worktree, then open a shell there.")
def open_worktree(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        worktrees = list_worktrees(state.runner, state.repo)
        if not worktrees:
            state.console.print("No worktrees found")
            return
        target = state.prompter.select("Select worktree:", _worktree_options(worktrees))
        prompt = state.prompter.text("Prompt (empty to skip):")
        state.console.print("Launching assistant in plan mode…")
        launch_assistant(state.runner, target.path, prompt or None)
        _enter(state, target.path)


@app.command(help="Ask the assistant to squash a PR's commits once CI passes.")
def clean(
    ctx: typer.Context,
    pr_number: Optional[int] = typer.Argument(None, help="PR number (defaults to the current branch's PR)."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(state):
        if pr_number is None:
            pull_request = state.github.current_pull_request(state.repo.cwd)
            if pull_request is None:
                raise ReferenceNotFound("No PR found for current branch. Usage: wt clean [pr-number]")
            pr_number = pull_request.number
        state.console.print(f"Spawning assistant to clean PR #{pr_number}…")
        returncode = run_assistant_once(state.runner, state.repo.cwd, clean_prompt(pr_number))
        if returncode != 0:
            raise BackendCommandFailed(["assistant", "--print"], returncode)


app.command("list", hidden=True, help="Alias for ls.")(ls)
app.command("remove", hidden=True, help="Alias for rm.")(rm)


def _pick(state: AppState) -> None:
    with _handle_errors(state):
        worktrees = list_worktrees(state.runner, state.repo)
        options: list[Option[Path | None]] = [Option(None, "+ Create new", "new worktree")]
        options.extend(Option(wt.path, wt.branch or wt.name, str(wt.path)) for wt in worktrees)
        selected = state.prompter.select("Select worktree:", options)
        if selected is None:
            result = _interactive_add(state, state.lifecycle(), create_pr=False)
            _finish(state, result, hand_off=True)
            return
        _enter(state, selected)


def _interactive_add(state: AppState, lifecycle: WorktreeLifecycle, *, create_pr: bool) -> CreatedWorktree:
    repo = state.repo
    with state.console.status("Fetching issues and PRs…"):
        issues = _list_or_empty(lambda: state.github.list_issues(repo.slug), "issues")
        pull_requests = _list_or_empty(lambda: state.github.list_pull_requests(repo.slug), "pull requests")

    options: list[Option[Issue | PullRequestSummary | None]] = [Option(None, "+ Custom branch", "create new")]
    options.extend(Option(issue, f"[Issue] #{issue.number} {issue.title}") for issue in issues)
    options.extend(Option(pr, f"[PR] #{pr.number} {pr.title}", pr.head_branch) for pr in pull_requests)
    selected = state.prompter.select("Select issue, PR, or create custom:", options)

    if selected is None:
        branch = state.prompter.text("Branch name:", placeholder="fix-something")
        wants_pr = create_pr or state.prompter.confirm("Create draft PR?", default=False)
        return lifecycle.create_branch(repo, branch, create_pr=wants_pr)
    if isinstance(selected, Issue):
        return lifecycle.create_from_issue(repo, selected, create_pr=create_pr)
    return lifecycle.track_remote(repo, selected.head_branch)


def _finish(state: AppState, result: CreatedWorktree, *, hand_off: bool) -> None:
    state.console.print(f"[green]Ready: {result.path}[/green]")
    if state.no_shell:
        return
    if result.issue_url and hand_off:
        state.console.print("Launching assistant…")
        launch_assistant(state.runner, result.path, issue_prompt(result.issue_url))
    _enter(state, result.path)


def _enter(state: AppState, path: Path) -> None:
    """Open a shell in ``path`` and exit with its status, or print the path."""
    if state.no_shell:
        state.console.print(str(path))
        return
    returncode = open_shell(state.runner, path)
    raise typer.Exit(returncode)


def _worktree_options(worktrees: list[Worktree]) -> list[Option[Worktree]]:
    return [Option(wt, wt.branch or wt.name, str(wt.path)) for wt in worktrees]


def _pull_requests_or_empty(state: AppState) -> list[PullRequestSummary]:
    return _list_or_empty(
        lambda: state.github.list_pull_requests(state.repo.slug, with_checks=True),
        "PR statuses",
    )


def _list_or_empty(fetch: Callable[[], list[T]], what: str) -> list[T]:
    try:
        return fetch()
    except BackendCommandFailed as exc:
        logger.warning("Could not fetch %s: %s", what, exc)
        return []


__all__ = ["app", "Services", "AppState"]
