"""Infer where the main repository and its worktrees live.

Three layouts are recognized, probed in this order; the first probe that
applies decides the whole topology:

1. bare container: ``<container>/repo.git`` (bare store) next to
   ``<container>/main`` and every other worktree;
2. nested: a checkout whose worktrees live in ``<root>/.worktrees``;
3. sibling suffix: ``<parent>/<repo>`` next to ``<parent>/<repo>-worktrees``.

Probes only look at the filesystem (and ``git rev-parse``); nothing is
created or modified while resolving.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

from . import git
from .config import UserConfig, find_env_seed, load_propagate_patterns
from .exceptions import AmbiguousTopology, NotARepository
from .github import GitHubClient
from .models import Layout, RepositoryContext, Topology
from .runner import CommandRunner

logger = logging.getLogger(__name__)

BARE_STORE_NAME = "repo.git"
MAIN_WORKTREE_NAME = "main"
NESTED_WORKTREES_DIR = ".worktrees"
SIBLING_SUFFIX = "-worktrees"

Probe = Callable[[Path, Path | None], Topology | None]


def gitdir_pointer(checkout: Path) -> Path | None:
    """Return the administrative directory named by a linked worktree's ``.git`` file."""
    dot_git = checkout / ".git"
    if not dot_git.is_file():
        return None
    try:
        content = dot_git.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not content.startswith("gitdir:"):
        return None
    target = Path(content[len("gitdir:") :].strip())
    if not target.is_absolute():
        target = checkout / target
    return Path(os.path.normpath(target))


def is_linked_worktree(checkout: Path) -> bool:
    return gitdir_pointer(checkout) is not None


def admin_repository_root(admin_dir: Path) -> Path | None:
    """Walk up from ``<root>/.git/worktrees/<name>`` to ``<root>``."""
    for candidate in (admin_dir, *admin_dir.parents):
        if candidate.name == ".git":
            return candidate.parent
    return None


def _is_bare_container(directory: Path) -> bool:
    store = directory / BARE_STORE_NAME
    return (store / "HEAD").is_file() and (directory / MAIN_WORKTREE_NAME).is_dir()


def probe_bare_container(cwd: Path, repo_root: Path | None) -> Topology | None:
    candidates = [repo_root.parent] if repo_root else [cwd, cwd.parent]
    for container in candidates:
        if _is_bare_container(container):
            return Topology(
                layout=Layout.BARE_CONTAINER,
                main_repo_path=container / BARE_STORE_NAME,
                main_repo_name=container.name,
                worktrees_path=container,
                seed_root=container / MAIN_WORKTREE_NAME,
            )
    return None


def probe_nested(cwd: Path, repo_root: Path | None) -> Topology | None:
    if repo_root is None:
        return None
    admin_dir = gitdir_pointer(repo_root)
    if admin_dir is None:
        root = repo_root
        if not (root / NESTED_WORKTREES_DIR).is_dir():
            return None
    else:
        root = admin_repository_root(admin_dir)
        if root is None or (root / NESTED_WORKTREES_DIR) not in repo_root.parents:
            return None
    return Topology(
        layout=Layout.NESTED,
        main_repo_path=root,
        main_repo_name=root.name,
        worktrees_path=root / NESTED_WORKTREES_DIR,
        seed_root=root,
    )


def probe_sibling_suffix(cwd: Path, repo_root: Path | None) -> Topology | None:
    if repo_root is None:
        # Standing in the suffixed directory itself, outside any checkout.
        if not cwd.name.endswith(SIBLING_SUFFIX):
            return None
        main_name = cwd.name[: -len(SIBLING_SUFFIX)]
        main = cwd.parent / main_name
        if not main_name or not main.is_dir():
            return None
        return Topology(Layout.SIBLING_SUFFIX, main, main_name, cwd, main)

    if repo_root.name.endswith(SIBLING_SUFFIX) and repo_root.name != SIBLING_SUFFIX:
        main_name = repo_root.name[: -len(SIBLING_SUFFIX)]
        main = repo_root.parent / main_name
        return Topology(Layout.SIBLING_SUFFIX, main, main_name, repo_root, main)

    if is_linked_worktree(repo_root):
        container = repo_root.parent
        if not container.name.endswith(SIBLING_SUFFIX) or container.name == SIBLING_SUFFIX:
            return None
        main_name = container.name[: -len(SIBLING_SUFFIX)]
        main = container.parent / main_name
        return Topology(Layout.SIBLING_SUFFIX, main, main_name, container, main)

    return Topology(
        layout=Layout.SIBLING_SUFFIX,
        main_repo_path=repo_root,
        main_repo_name=repo_root.name,
        worktrees_path=repo_root.parent / f"{repo_root.name}{SIBLING_SUFFIX}",
        seed_root=repo_root,
    )


PROBES: tuple[Probe, ...] = (probe_bare_container, probe_nested, probe_sibling_suffix)


def detect_topology(cwd: Path, repo_root: Path | None) -> Topology:
    """Run the probes in priority order and return the first match."""
    for probe in PROBES:
        topology = probe(cwd, repo_root)
        if topology is not None:
            logger.debug("Layout %s matched by %s", topology.layout.value, probe.__name__)
            return topology
    if repo_root is not None:
        raise AmbiguousTopology(
            f"Cannot determine the main repository for {repo_root}: "
            f"expected it under '{NESTED_WORKTREES_DIR}/', '<repo>{SIBLING_SUFFIX}/' or a '{BARE_STORE_NAME}' container."
        )
    raise NotARepository("Not in a git repository. Use `wt init <url>` to create one.")


def resolve_context(
    cwd: Path,
    runner: CommandRunner,
    github: GitHubClient,
    user_config: UserConfig,
) -> RepositoryContext:
    """Build the :class:`RepositoryContext` for an invocation from ``cwd``."""
    repo_root = git.toplevel(runner, cwd)
    topology = detect_topology(cwd, repo_root)
    identity = github.repo_identity(cwd=repo_root or topology.main_repo_path)

    worktrees_path = topology.worktrees_path
    override = user_config.worktrees_override(identity.slug)
    if override is not None:
        logger.debug("Using configured worktrees path for %s: %s", identity.slug, override)
        worktrees_path = override

    return RepositoryContext(
        repo_root=repo_root,
        main_repo_path=topology.main_repo_path,
        main_repo_name=topology.main_repo_name,
        worktrees_path=worktrees_path,
        owner=identity.owner,
        name=identity.name,
        default_branch=identity.default_branch,
        cwd=cwd,
        layout=topology.layout,
        env_seed=find_env_seed(topology.seed_root),
        propagate_patterns=load_propagate_patterns(worktrees_path),
    )


__all__ = [
    "BARE_STORE_NAME",
    "MAIN_WORKTREE_NAME",
    "NESTED_WORKTREES_DIR",
    "SIBLING_SUFFIX",
    "PROBES",
    "gitdir_pointer",
    "admin_repository_root",
    "probe_bare_container",
    "probe_nested",
    "probe_sibling_suffix",
    "detect_topology",
    "resolve_context",
]
