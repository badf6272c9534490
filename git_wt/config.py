"""User configuration, propagation patterns and logging setup."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .exceptions import ConfigError

CONFIG_ENV_VAR = "WT_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/wt/config.json")
PROPAGATE_FILE_NAME = ".wtinclude"
ENV_SEED_NAME = ".env"


@dataclass(frozen=True, slots=True)
class UserConfig:
    """Per-project overrides keyed by ``owner/name``.

    Relative paths are taken relative to ``base_dir``, the directory holding
    the config file.
    """

    worktree_paths: Mapping[str, str] = field(default_factory=dict)
    base_dir: Path | None = None

    def worktrees_override(self, slug: str) -> Path | None:
        raw = self.worktree_paths.get(slug)
        if not raw:
            return None
        path = expand_home(raw)
        if not path.is_absolute():
            if self.base_dir is None:
                raise ConfigError(f"Worktrees path for {slug} must be absolute: {raw}")
            path = self.base_dir / path
        return path


def config_path() -> Path:
    raw = os.environ.get(CONFIG_ENV_VAR)
    return expand_home(raw) if raw else expand_home(str(DEFAULT_CONFIG_PATH))


def load_user_config(path: Path | None = None) -> UserConfig:
    path = path or config_path()
    if not path.exists():
        return UserConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc
    if not isinstance(data, dict) or not all(isinstance(value, str) for value in data.values()):
        raise ConfigError(f'Config file {path} must map "owner/name" to a directory path.')
    return UserConfig(worktree_paths=dict(data), base_dir=path.absolute().parent)


def expand_home(raw: str) -> Path:
    """Expand a leading ``~`` the way a shell would."""
    if raw == "~" or raw.startswith("~/"):
        return Path.home() / raw[2:]
    return Path(raw)


def load_propagate_patterns(worktrees_path: Path) -> tuple[str, ...]:
    pattern_file = worktrees_path / PROPAGATE_FILE_NAME
    if not pattern_file.is_file():
        return ()
    try:
        text = pattern_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read {pattern_file}: {exc}") from exc
    patterns: list[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        patterns.append(line)
    return tuple(patterns)


def find_env_seed(seed_root: Path) -> Path | None:
    candidate = seed_root / ENV_SEED_NAME
    return candidate if candidate.is_file() else None


def shell_command() -> list[str]:
    return [os.environ.get("SHELL") or "zsh"]


def assistant_executable() -> str:
    return os.environ.get("WT_ASSISTANT") or "claude"


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


__all__ = [
    "UserConfig",
    "config_path",
    "load_user_config",
    "expand_home",
    "load_propagate_patterns",
    "find_env_seed",
    "shell_command",
    "assistant_executable",
    "configure_logging",
    "PROPAGATE_FILE_NAME",
]
