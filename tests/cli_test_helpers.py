"""Shared test helpers for CLI test modules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from typer.testing import CliRunner

from slate.cli import app

if TYPE_CHECKING:
    from pathlib import Path

    from click.testing import Result

runner = CliRunner()


def _init_with_project(slate_dir: Path, slug: str = "web") -> None:
    """Initialize a slate tracker and create one project."""
    result = runner.invoke(app, ["init", "--slate-dir", str(slate_dir)])
    assert result.exit_code == 0, result.stdout
    result = runner.invoke(
        app,
        ["project", "create", slug.capitalize(), "--slug", slug,
         "--slate-dir", str(slate_dir)],
    )
    assert result.exit_code == 0, result.stdout


def _create_issue(
    slate_dir: Path,
    title: str,
    project: str = "web",
    **kwargs: str,
) -> None:
    """Create an issue with optional extra flags."""
    cmd: list[str] = [
        "create", title, "--project", project, "--slate-dir", str(slate_dir),
    ]
    for key, val in kwargs.items():
        cmd.extend([f"--{key}", val])
    result = runner.invoke(app, cmd)
    assert result.exit_code == 0, result.stdout


def _dep(slate_dir: Path, *args: str) -> Result:
    """Invoke ``slate dep`` with the given arguments."""
    return runner.invoke(app, ["dep", *args, "--slate-dir", str(slate_dir)])
