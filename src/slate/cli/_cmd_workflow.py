"""Workflow commands for slate CLI: ready and blocked work."""

from __future__ import annotations

import orjson
import typer

from slate.constants import DEFAULT_SLATE_DIR
from slate.deps import get_blocked_issues, get_ready_work

from ._formatting import format_issue_table, issue_to_json
from ._helpers import get_storage, resolve_project
from ._json_state import echo_error, is_json_output


def register(app: typer.Typer) -> None:
    """Register workflow commands."""

    @app.command()
    def ready(
        project: str | None = typer.Option(
            None,
            "--project",
            "-p",
            help="Only issues of this project",
        ),
        limit: int | None = typer.Option(None, "--limit", "-l", help="Limit results"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Show issues ready to work (no unresolved blockers)."""
        try:
            storage = get_storage(slate_dir)
            project_id = resolve_project(storage, project).id if project else None
            ready_issues = get_ready_work(storage, project_id)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if limit:
            ready_issues = ready_issues[:limit]

        if is_json_output(json_output):
            output = [issue_to_json(storage, i) for i in ready_issues]
            typer.echo(orjson.dumps(output).decode())
        elif not ready_issues:
            typer.echo("No ready work")
        else:
            typer.echo(format_issue_table(storage, ready_issues))

    @app.command()
    def blocked(
        project: str | None = typer.Option(
            None,
            "--project",
            "-p",
            help="Only issues of this project",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Show issues waiting on unresolved blockers."""
        try:
            storage = get_storage(slate_dir)
            project_id = resolve_project(storage, project).id if project else None
            blocked_issues = get_blocked_issues(storage, project_id)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            output = [
                {
                    "issue_id": b.issue_id,
                    "blocking_ids": b.blocking_ids,
                    "reason": b.reason,
                }
                for b in blocked_issues
            ]
            typer.echo(orjson.dumps(output).decode())
            return

        if not blocked_issues:
            typer.echo("No blocked issues")
            return

        issues = []
        blocked_by_map: dict[str, list[str]] = {}
        for b in blocked_issues:
            issue = storage.get(b.issue_id)
            if issue is None:
                continue
            issues.append(issue)
            blocked_by_map[issue.id] = [
                storage.issue_ref(blocker)
                for blocker in (storage.get(x) for x in b.blocking_ids)
                if blocker is not None
            ]
        typer.echo(format_issue_table(storage, issues, blocked_by_map))
