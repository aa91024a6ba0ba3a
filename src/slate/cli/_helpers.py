"""Shared infrastructure for slate CLI commands."""

from __future__ import annotations

import functools
import getpass
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from typer.core import TyperGroup

from slate.config import get_default_actor
from slate.constants import DEFAULT_SLATE_DIR, STORAGE_FILENAME
from slate.storage import JSONLStorage

if TYPE_CHECKING:
    import click

    from slate.models import Issue, Project


class SortedGroup(TyperGroup):
    """Typer group that lists commands in alphabetical order."""

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return commands sorted alphabetically."""
        return sorted(super().list_commands(ctx))


@functools.lru_cache(maxsize=1)
def get_default_operator() -> str:
    """Get the default operator (user identifier) for changes.

    Tries to get the git config user.email first, falls back to machine username.
    """
    try:
        result = subprocess.run(
            ["git", "config", "user.email"],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (FileNotFoundError, OSError):
        # git not installed or other OS error
        pass

    return getpass.getuser()


def resolve_actor(by: str | None, slate_dir: str) -> str:
    """Pick the actor for a change: --by, then config default_actor, then git/user."""
    return by or get_default_actor(slate_dir) or get_default_operator()


def find_slate_dir(start_dir: str | None = None) -> str:
    """Find .slate directory by searching upward from start_dir.

    Args:
        start_dir: Directory to start searching from (default: current directory)

    Returns:
        Path to .slate directory, or ".slate" if not found
    """
    current = Path.cwd() if start_dir is None else Path(start_dir).resolve()

    while True:
        candidate = current / DEFAULT_SLATE_DIR
        if candidate.is_dir():
            return str(candidate)

        parent = current.parent
        if parent == current:
            return DEFAULT_SLATE_DIR
        current = parent


def get_storage(
    slate_dir: str = DEFAULT_SLATE_DIR,
    create_dir: bool = False,
) -> JSONLStorage:
    """Get or create storage instance.

    If slate_dir doesn't exist in current directory, searches upward
    to find it (similar to how git finds .git).
    """
    if not create_dir and not Path(slate_dir).is_dir():
        slate_dir = find_slate_dir()
    return JSONLStorage(str(Path(slate_dir) / STORAGE_FILENAME), create_dir=create_dir)


def resolve_issue(storage: JSONLStorage, ref: str) -> Issue:
    """Resolve an issue ID or ``slug-number`` reference to an issue.

    Raises:
        ValueError: If the reference matches no issue
    """
    issue_id = storage.resolve_ref(ref)
    issue = storage.get(issue_id) if issue_id else None
    if issue is None:
        msg = f"Issue {ref} not found"
        raise ValueError(msg)
    return issue


def resolve_project(storage: JSONLStorage, slug: str) -> Project:
    """Resolve a project slug.

    Raises:
        ValueError: If no project has this slug
    """
    project = storage.get_project_by_slug(slug)
    if project is None:
        msg = f"Project '{slug}' not found"
        raise ValueError(msg)
    return project
