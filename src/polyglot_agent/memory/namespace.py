"""Resolve the namespace under which long-term memory is persisted."""

from __future__ import annotations

import subprocess
from pathlib import Path

from polyglot_agent.config import Config


def detect(config: Config | None = None, cwd: str | Path | None = None) -> str:
    base = Path(cwd) if cwd is not None else Path.cwd()
    return (
        configured(config)
        or from_git_repo(base)
        or from_project_dir(base)
        or from_cwd(base)
        or "default"
    )


def configured(config: Config | None) -> str | None:
    if config is None or not config.namespace:
        return None
    return str(config.namespace)


def from_git_repo(cwd: Path) -> str | None:
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    top = completed.stdout.strip()
    if completed.returncode != 0 or not top:
        return None
    return Path(top).name


def from_project_dir(cwd: Path) -> str | None:
    for directory in (cwd, *cwd.parents):
        if (directory / "pyproject.toml").exists():
            return directory.name
    return None


def from_cwd(cwd: Path) -> str | None:
    return cwd.name or None
