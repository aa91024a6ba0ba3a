"""History command for slate CLI."""

from __future__ import annotations

import orjson
import typer

from slate.audit import AuditLog
from slate.constants import DEFAULT_SLATE_DIR

from ._formatting import format_audit
from ._helpers import get_storage, resolve_issue, resolve_project
from ._json_state import echo_error, is_json_output


def register(app: typer.Typer) -> None:
    """Register the history command."""

    @app.command()
    def history(
        issue: str | None = typer.Option(
            None,
            "--issue",
            "-i",
            help="Only records for this issue",
        ),
        project: str | None = typer.Option(
            None,
            "--project",
            "-p",
            help="Only records for this project",
        ),
        limit: int = typer.Option(20, "--limit", "-l", help="Number of records"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Show the audit trail, newest first."""
        try:
            storage = get_storage(slate_dir)
            issue_id = resolve_issue(storage, issue).id if issue else None
            project_id = resolve_project(storage, project).id if project else None
            records = AuditLog(storage.slate_dir).read(
                issue_id=issue_id,
                project_id=project_id,
                limit=limit,
            )
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            output = [
                {
                    "id": r.id,
                    "project_id": r.project_id,
                    "issue_id": r.issue_id,
                    "actor_id": r.actor_id,
                    "action": r.action,
                    "details": r.details,
                    "created_at": r.created_at.isoformat(),
                }
                for r in records
            ]
            typer.echo(orjson.dumps(output).decode())
            return

        if not records:
            typer.echo("No history")
            return
        for record in records:
            typer.echo(format_audit(record, storage))
