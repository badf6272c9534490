"""GitHub access through the ``gh`` CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from .exceptions import BackendCommandFailed, PRCreateFailed, RemoteLookupFailed
from .models import Issue, PullRequestSummary, RepoIdentity
from .runner import CommandRunner

logger = logging.getLogger(__name__)

LIST_LIMIT = 100
_PR_FIELDS = "number,title,headRefName,author,url"


class GitHubClient:
    """Structured queries against the hosting platform.

    The authenticated login is looked up at most once per client, and the CLI
    builds one client per process.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner
        self._login: str | None = None

    def repo_identity(self, cwd: Path) -> RepoIdentity:
        try:
            data = self._json(["repo", "view", "--json", "owner,name,defaultBranchRef"], cwd=cwd)
            return RepoIdentity(
                owner=data["owner"]["login"],
                name=data["name"],
                default_branch=data["defaultBranchRef"]["name"],
            )
        except (BackendCommandFailed, KeyError, TypeError) as exc:
            raise RemoteLookupFailed("Failed to get repo info from GitHub") from exc

    def current_user(self) -> str:
        if self._login is None:
            self._login = self._runner.run(["gh", "api", "user", "--jq", ".login"]).strip()
        return self._login

    def repo_exists(self, slug: str) -> bool:
        try:
            self._runner.run(["gh", "repo", "view", slug, "--json", "name"])
        except BackendCommandFailed:
            return False
        return True

    def fork(self, slug: str) -> None:
        self._runner.run(["gh", "repo", "fork", slug, "--clone=false"])

    def view_pull_request(self, slug: str, number: int) -> PullRequestSummary | None:
        try:
            data = self._json(["pr", "view", str(number), "--repo", slug, "--json", _PR_FIELDS])
        except BackendCommandFailed:
            return None
        return _pull_request_from(data) if data else None

    def view_issue(self, slug: str, number: int) -> Issue | None:
        try:
            data = self._json(["issue", "view", str(number), "--repo", slug, "--json", "number,title,url,author"])
        except BackendCommandFailed:
            return None
        return _issue_from(data) if data else None

    def list_issues(self, slug: str) -> list[Issue]:
        data = self._json(
            [
                "issue",
                "list",
                "--repo",
                slug,
                "--state",
                "open",
                "--limit",
                str(LIST_LIMIT),
                "--json",
                "number,title,url,author",
            ]
        )
        return [_issue_from(item) for item in data or []]

    def list_pull_requests(self, slug: str, *, with_checks: bool = False) -> list[PullRequestSummary]:
        fields = _PR_FIELDS + (",statusCheckRollup" if with_checks else "")
        data = self._json(
            [
                "pr",
                "list",
                "--repo",
                slug,
                "--state",
                "open",
                "--limit",
                str(LIST_LIMIT),
                "--json",
                fields,
            ]
        )
        return [_pull_request_from(item) for item in data or []]

    def current_pull_request(self, cwd: Path) -> PullRequestSummary | None:
        """Return the PR whose head is the branch checked out in ``cwd``."""
        try:
            data = self._json(["pr", "view", "--json", _PR_FIELDS], cwd=cwd)
        except BackendCommandFailed:
            return None
        return _pull_request_from(data) if data else None

    def create_draft_pr(self, slug: str, branch: str, *, head: str, cwd: Path) -> str:
        try:
            return self._runner.run(
                [
                    "gh",
                    "pr",
                    "create",
                    "--draft",
                    "--title",
                    branch,
                    "--body",
                    "",
                    "--head",
                    head,
                    "--repo",
                    slug,
                ],
                cwd=cwd,
            )
        except BackendCommandFailed as exc:
            raise PRCreateFailed(f"Failed to create PR (may already exist): {exc}") from exc

    def stream_checks(self, number: int, cwd: Path) -> int:
        return self._runner.stream(["gh", "pr", "checks", str(number)], cwd=cwd)

    def _json(self, args: Sequence[str], *, cwd: Path | None = None) -> Any:
        command = ["gh", *args]
        output = self._runner.run(command, cwd=cwd)
        try:
            return json.loads(output or "null")
        except json.JSONDecodeError as exc:
            raise BackendCommandFailed(command, 0, stdout=output, stderr=f"invalid JSON: {exc}") from exc


def _author(data: dict[str, Any]) -> str | None:
    author = data.get("author")
    if isinstance(author, dict):
        return author.get("login")
    return None


def _check_conclusions(rollup: list[dict[str, Any]] | None) -> tuple[str, ...]:
    """Flatten a ``statusCheckRollup`` into outcome strings.

    Check runs report ``conclusion`` (empty while in progress), commit statuses
    report ``state``.
    """
    outcomes: list[str] = []
    for check in rollup or []:
        outcome = check.get("conclusion") or check.get("state") or check.get("status") or ""
        outcomes.append(str(outcome).upper())
    return tuple(outcomes)


def _pull_request_from(data: dict[str, Any]) -> PullRequestSummary:
    return PullRequestSummary(
        number=int(data["number"]),
        title=data.get("title", ""),
        head_branch=data.get("headRefName", ""),
        check_conclusions=_check_conclusions(data.get("statusCheckRollup")),
        author=_author(data),
        url=data.get("url"),
    )


def _issue_from(data: dict[str, Any]) -> Issue:
    return Issue(
        number=int(data["number"]),
        title=data.get("title", ""),
        url=data.get("url"),
        author=_author(data),
    )


__all__ = ["GitHubClient", "LIST_LIMIT"]
