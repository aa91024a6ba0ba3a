"""Project commands for slate CLI."""

from __future__ import annotations

import orjson
import typer

from slate.constants import DEFAULT_SLATE_DIR

from ._helpers import SortedGroup, get_storage
from ._json_state import echo_error, is_json_output

project_app = typer.Typer(
    name="project",
    help="Manage projects.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def register(app: typer.Typer) -> None:
    """Register the project command group."""
    app.add_typer(project_app)

    @project_app.command("create")
    def create_project(
        name: str = typer.Argument(..., help="Project name"),
        slug: str = typer.Option(..., "--slug", "-s", help="Short unique slug"),
        description: str | None = typer.Option(
            None,
            "--description",
            "-d",
            help="Project description",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Create a project."""
        try:
            storage = get_storage(slate_dir)
            project = storage.create_project(name, slug, description)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        if is_json_output(json_output):
            typer.echo(
                orjson.dumps(
                    {"id": project.id, "name": project.name, "slug": project.slug},
                ).decode(),
            )
        else:
            typer.echo(f"✓ Created project {project.slug}: {project.name}")

    @project_app.command("list")
    def list_projects(
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """List projects."""
        try:
            storage = get_storage(slate_dir)
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)

        projects = storage.list_projects()
        if is_json_output(json_output):
            output = [
                {
                    "id": p.id,
                    "name": p.name,
                    "slug": p.slug,
                    "issues": len(storage.list({"project_id": p.id})),
                }
                for p in projects
            ]
            typer.echo(orjson.dumps(output).decode())
            return

        if not projects:
            typer.echo("No projects")
            return
        for p in projects:
            count = len(storage.list({"project_id": p.id}))
            typer.echo(f"  {p.slug:<16} {p.name} ({count} issues)")
