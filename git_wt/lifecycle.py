"""Create, track, remove and sync worktrees."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from rich.console import Console

from . import git
from .config import ENV_SEED_NAME
from .exceptions import (
    AlreadyExists,
    BackendCommandFailed,
    PRCreateFailed,
    ReferenceNotFound,
    ValidationError,
)
from .github import GitHubClient
from .models import CreatedWorktree, Issue, PullRequestSummary, RepositoryContext, Worktree
from .remotes import RemoteCoordinator
from .runner import CommandRunner
from .topology import BARE_STORE_NAME, MAIN_WORKTREE_NAME

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 40
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_REPO_NAME_RE = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


def slugify(text: str) -> str:
    """Lower-case ``text`` into a hyphenated slug of at most 40 characters."""
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def flatten_branch(branch: str) -> str:
    """Keep worktree directories one level deep: ``feat/x`` -> ``feat-x``."""
    return branch.replace("/", "-")


def issue_branch_name(issue: Issue) -> str:
    slug = slugify(issue.title)
    return f"{issue.number}-{slug}" if slug else str(issue.number)


def parse_repo_name(url: str) -> str:
    match = _REPO_NAME_RE.search(url.strip())
    return match.group(1) if match else "repo"


def parse_number_reference(ref: str) -> int:
    raw = ref[1:] if ref.startswith("#") else ref
    if not raw.isdigit():
        raise ValidationError(f"Invalid number: {ref}")
    return int(raw)


def validate_branch_name(branch: str) -> str:
    branch = branch.strip()
    if not branch:
        raise ValidationError("Branch name cannot be empty.")
    if branch.startswith("-") or any(char.isspace() for char in branch):
        raise ValidationError(f"Invalid branch name: {branch!r}")
    return branch


class WorktreeLifecycle:
    """Orchestrates the mutating worktree workflows.

    Every workflow runs fetch, then materialize, then propagate files, then
    (for new branches) publish and open a PR. A failure before the worktree
    exists aborts the command; failures in the propagation and PR steps are
    logged and leave the worktree in place.
    """

    def __init__(
        self,
        runner: CommandRunner,
        github: GitHubClient,
        console: Console,
        coordinator: RemoteCoordinator | None = None,
    ) -> None:
        self._runner = runner
        self._github = github
        self._console = console
        self._coordinator = coordinator or RemoteCoordinator(runner, github)

    def worktree_path(self, ctx: RepositoryContext, branch: str) -> Path:
        return ctx.worktrees_path / flatten_branch(branch)

    def add(self, ctx: RepositoryContext, ref: str, *, create_pr: bool = False) -> CreatedWorktree:
        """Dispatch ``wt add <ref>``: ``#N`` issue or PR, ``@branch`` remote, else a new branch."""
        ref = ref.strip()
        if ref.startswith("#"):
            number = parse_number_reference(ref)
            with self._console.status(f"Looking up #{number}…"):
                found = self.resolve_reference(ctx, number)
            if isinstance(found, PullRequestSummary):
                self._console.print(f"Found PR: {found.title}")
                return self.track_remote(ctx, found.head_branch)
            self._console.print(f"Found issue: {found.title}")
            return self.create_from_issue(ctx, found, create_pr=create_pr)
        if ref.startswith("@"):
            return self.track_remote(ctx, ref[1:])
        return self.create_branch(ctx, ref, create_pr=create_pr)

    def resolve_reference(self, ctx: RepositoryContext, number: int) -> PullRequestSummary | Issue:
        """Resolve ``#number`` to a pull request, else an issue.

        GitHub numbers issues and pull requests from one sequence, so at most
        one of the two lookups can succeed.
        """
        pull_request = self._github.view_pull_request(ctx.slug, number)
        if pull_request is not None:
            return pull_request
        issue = self._github.view_issue(ctx.slug, number)
        if issue is not None:
            return issue
        raise ReferenceNotFound(f"#{number} not found")

    def create_branch(
        self,
        ctx: RepositoryContext,
        branch: str,
        *,
        create_pr: bool = False,
        issue_url: str | None = None,
    ) -> CreatedWorktree:
        branch = validate_branch_name(branch)
        target = self._claim_path(ctx, branch)
        base = ctx.default_branch

        with self._console.status(f"Fetching {base}…"):
            git.fetch(self._runner, ctx.main_repo_path, base)
        with self._console.status(f"Creating: {branch}"):
            git.worktree_add_new(self._runner, ctx.main_repo_path, target, branch, f"origin/{base}")

        result = CreatedWorktree(path=target, branch=branch, issue_url=issue_url)
        result.warnings.extend(self.propagate_files(ctx, target))

        with self._console.status("Pushing branch…"):
            result.push = self._coordinator.ensure_pushable(ctx, target, branch)
        if result.push.pushed_as_fork:
            self._console.print(f"[yellow]Pushed to fork remote '{result.push.remote_name}'[/yellow]")

        if create_pr:
            head = f"{result.push.fork_owner}:{branch}" if result.push.pushed_as_fork else branch
            try:
                with self._console.status("Creating draft PR…"):
                    result.pr_url = self._github.create_draft_pr(ctx.slug, branch, head=head, cwd=target)
                self._console.print(f"[green]Draft PR: {result.pr_url}[/green]")
            except PRCreateFailed as exc:
                logger.warning("%s", exc)
                result.warnings.append(str(exc))
        return result

    def create_from_issue(self, ctx: RepositoryContext, issue: Issue, *, create_pr: bool = False) -> CreatedWorktree:
        issue_url = issue.url or f"https://github.com/{ctx.slug}/issues/{issue.number}"
        return self.create_branch(ctx, issue_branch_name(issue), create_pr=create_pr, issue_url=issue_url)

    def track_remote(self, ctx: RepositoryContext, branch: str) -> CreatedWorktree:
        """Attach a worktree to a branch that already exists on ``origin``."""
        branch = validate_branch_name(branch)
        target = self._claim_path(ctx, branch)
        repo = ctx.main_repo_path

        with self._console.status(f"Fetching: {branch}"):
            git.fetch(self._runner, repo, branch)
        if git.local_branch_exists(self._runner, repo, branch):
            git.worktree_add_existing(self._runner, repo, target, branch)
        else:
            git.worktree_add_tracking(self._runner, repo, target, branch, f"origin/{branch}")

        result = CreatedWorktree(path=target, branch=branch)
        result.warnings.extend(self.propagate_files(ctx, target))
        return result

    def propagate_files(self, ctx: RepositoryContext, target: Path) -> list[str]:
        """Copy the seed ``.env`` and ``.wtinclude`` matches into ``target``.

        Returns warning messages for copies that failed.
        """
        warnings: list[str] = []
        if ctx.env_seed is not None:
            try:
                shutil.copyfile(ctx.env_seed, target / ENV_SEED_NAME)
                self._console.print(f"[green]Copied {ENV_SEED_NAME}[/green]")
            except OSError as exc:
                warnings.append(f"Could not copy {ctx.env_seed}: {exc}")
        for pattern in ctx.propagate_patterns:
            try:
                matches = sorted(ctx.worktrees_path.glob(pattern))
            except (ValueError, NotImplementedError) as exc:
                warnings.append(f"Ignoring pattern {pattern!r}: {exc}")
                continue
            for source in matches:
                if not source.is_file() or target in source.parents:
                    continue
                relative = source.relative_to(ctx.worktrees_path)
                destination = target / relative
                try:
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(source, destination)
                    self._console.print(f"[green]Copied {relative.as_posix()}[/green]")
                except OSError as exc:
                    warnings.append(f"Could not copy {relative.as_posix()}: {exc}")
        for message in warnings:
            logger.warning("%s", message)
        return warnings

    def remove(self, ctx: RepositoryContext, worktree: Worktree) -> None:
        """Force-remove ``worktree``; callers confirm with the user first."""
        with self._console.status(f"Removing: {worktree.branch or worktree.path}"):
            git.worktree_remove(self._runner, ctx.main_repo_path, worktree.path)

    def sync(self, ctx: RepositoryContext) -> None:
        """Fetch the default branch and rebase the current checkout on it, in the terminal."""
        base = ctx.default_branch
        for command in (["git", "fetch", "origin", base], ["git", "rebase", f"origin/{base}"]):
            returncode = self._runner.stream(command, cwd=ctx.cwd)
            if returncode != 0:
                raise BackendCommandFailed(command, returncode)

    def _claim_path(self, ctx: RepositoryContext, branch: str) -> Path:
        target = self.worktree_path(ctx, branch)
        if target.exists():
            raise AlreadyExists(target)
        return target


def init_repository(
    runner: CommandRunner,
    console: Console,
    url: str,
    name: str | None = None,
    *,
    cwd: Path,
) -> Path:
    """Clone ``url`` into a bare-store container and return its ``main`` worktree."""
    container = cwd / (name or parse_repo_name(url))
    if container.exists():
        raise AlreadyExists(container)
    container.mkdir(parents=True)
    store = container / BARE_STORE_NAME

    main = container / MAIN_WORKTREE_NAME
    try:
        with console.status("Cloning bare repo…"):
            git.clone_bare(runner, url, store)
            git.configure_fetch_refspec(runner, store)
            git.fetch_all(runner, store)
        default_branch = git.head_branch(runner, store)
        with console.status(f"Creating main worktree ({default_branch})…"):
            git.worktree_add_existing(runner, store, main, default_branch)
    except BackendCommandFailed:
        shutil.rmtree(container, ignore_errors=True)
        raise

    env_file = cwd / ENV_SEED_NAME
    if env_file.is_file():
        try:
            shutil.copyfile(env_file, main / ENV_SEED_NAME)
            console.print(f"[green]Copied {ENV_SEED_NAME}[/green]")
        except OSError as exc:
            logger.warning("Could not copy %s: %s", env_file, exc)
    return main


__all__ = [
    "WorktreeLifecycle",
    "init_repository",
    "slugify",
    "flatten_branch",
    "issue_branch_name",
    "parse_repo_name",
    "parse_number_reference",
    "validate_branch_name",
]
