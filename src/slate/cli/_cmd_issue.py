"""Issue commands for slate CLI: create, list, show, status, delete."""

from __future__ import annotations

from typing import Any

import orjson
import typer

from slate.constants import DEFAULT_SLATE_DIR
from slate.deps import list_dependencies, open_blockers

from ._formatting import format_issue_brief, format_issue_table, issue_to_json
from ._helpers import get_storage, resolve_actor, resolve_issue, resolve_project
from ._json_state import echo_error, is_json_output


def register(app: typer.Typer) -> None:
    """Register issue commands."""

    @app.command()
    def create(
        title: str = typer.Argument(..., help="Issue title"),
        project: str = typer.Option(..., "--project", "-p", help="Project slug"),
        description: str | None = typer.Option(
            None,
            "--description",
            "-d",
            help="Issue description",
        ),
        status: str | None = typer.Option(None, "--status", "-s", help="Status"),
        priority: str | None = typer.Option(
            None,
            "--priority",
            help="Priority (low, medium, high, critical)",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        by: str | None = typer.Option(None, "--by", help="Who is creating this"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Create an issue in a project."""
        try:
            storage = get_storage(slate_dir)
            proj = resolve_project(storage, project)
            issue = storage.create_issue(
                proj.id,
                title,
                description=description,
                status=status,
                priority=priority,
                created_by=resolve_actor(by, str(storage.slate_dir)),
            )
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            typer.echo(orjson.dumps(issue_to_json(storage, issue)).decode())
        else:
            typer.echo(f"✓ Created {storage.issue_ref(issue)}: {issue.title}")

    @app.command("list")
    def list_issues(
        project: str | None = typer.Option(
            None,
            "--project",
            "-p",
            help="Only issues of this project",
        ),
        status: str | None = typer.Option(None, "--status", "-s", help="Status"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """List issues."""
        try:
            storage = get_storage(slate_dir)
            filters: dict[str, Any] = {"status": status}
            if project:
                filters["project_id"] = resolve_project(storage, project).id
            issues = storage.list(filters)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            output = [issue_to_json(storage, i) for i in issues]
            typer.echo(orjson.dumps(output).decode())
            return

        if not issues:
            typer.echo("No issues found")
            return

        blocked_by_map: dict[str, list[str]] = {}
        for issue in issues:
            blockers = open_blockers(storage, issue.id)
            if blockers and not issue.is_done():
                blocked_by_map[issue.id] = [storage.issue_ref(b) for b in blockers]
        typer.echo(format_issue_table(storage, issues, blocked_by_map))

    @app.command()
    def show(
        ref: str = typer.Argument(..., help="Issue ID or slug-number reference"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Show an issue with its dependencies."""
        try:
            storage = get_storage(slate_dir)
            issue = resolve_issue(storage, ref)
            listing = list_dependencies(storage, issue.id)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            output = {**issue_to_json(storage, issue), **listing.to_dict()}
            typer.echo(orjson.dumps(output).decode())
            return

        typer.echo(format_issue_brief(storage, issue))
        typer.echo(f"  ID:       {issue.id}")
        typer.echo(f"  Status:   {issue.status.value}")
        typer.echo(f"  Priority: {issue.priority.value}")
        if issue.description:
            typer.echo(f"\n{issue.description}")
        if listing.blocked_by:
            typer.echo("\nBlocked by:")
            for s in listing.blocked_by:
                typer.echo(f"  ← {s.ref} [{s.status.value}] {s.title}")
        if listing.blocking:
            typer.echo("\nBlocking:")
            for s in listing.blocking:
                typer.echo(f"  → {s.ref} [{s.status.value}] {s.title}")

    @app.command()
    def status(
        ref: str = typer.Argument(..., help="Issue ID or slug-number reference"),
        new_status: str = typer.Argument(
            ...,
            help="backlog, ready, in_progress, blocked or done",
        ),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Change the status of an issue."""
        try:
            storage = get_storage(slate_dir)
            issue = resolve_issue(storage, ref)
            issue = storage.update(issue.id, {"status": new_status})
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        typer.echo(f"✓ {storage.issue_ref(issue)} is now {issue.status.value}")

    @app.command()
    def delete(
        ref: str = typer.Argument(..., help="Issue ID or slug-number reference"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Delete an issue and the dependencies touching it."""
        try:
            storage = get_storage(slate_dir)
            issue = resolve_issue(storage, ref)
            ref_str = storage.issue_ref(issue)
            removed = storage.delete(issue.id)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        typer.echo(f"✓ Deleted {ref_str}")
        if removed:
            typer.echo(f"  Removed {len(removed)} dependency edge(s)")
