"""Dependency commands for slate CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
import typer

from slate.constants import DEFAULT_SLATE_DIR
from slate.deps import add_dependency, list_dependencies, remove_dependency

from ._helpers import get_storage, resolve_actor
from ._json_state import echo_error, is_json_output

if TYPE_CHECKING:
    from slate.storage import JSONLStorage


def _ref(storage: JSONLStorage, issue_id: str) -> str:
    issue = storage.get(issue_id)
    return storage.issue_ref(issue) if issue else issue_id


def register(app: typer.Typer) -> None:
    """Register the dep command."""

    @app.command("dep")
    def dependency(
        issue_ref: str = typer.Argument(
            ...,
            help="Issue ID or slug-number reference",
        ),
        subcommand: str = typer.Argument(..., help="add, remove, or list"),
        target: str | None = typer.Option(
            None,
            "--target",
            "-t",
            help="The other issue (ID or slug-number reference)",
        ),
        dep_type: str = typer.Option(
            "blocks",
            "--type",
            help="blocks (this issue blocks target) or blocked_by",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        by: str | None = typer.Option(None, "--by", help="Who is making this change"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Manage blocking dependencies of an issue."""
        json_mode = is_json_output(json_output)
        try:
            storage = get_storage(slate_dir)
            source_id = storage.resolve_ref(issue_ref) or issue_ref
            target_id = (storage.resolve_ref(target) or target) if target else None
            actor = resolve_actor(by, str(storage.slate_dir))

            if subcommand == "add":
                change = add_dependency(
                    storage,
                    source_id,
                    target_id,
                    dep_type,
                    actor_id=actor,
                )
                if json_mode:
                    typer.echo(orjson.dumps(change.to_dict()).decode())
                else:
                    blocker = _ref(storage, change.dependency.blocker_id)
                    blocked = _ref(storage, change.dependency.blocked_id)
                    typer.echo(f"✓ Added dependency: {blocker} blocks {blocked}")

            elif subcommand == "remove":
                change = remove_dependency(
                    storage,
                    source_id,
                    target_id,
                    dep_type,
                    actor_id=actor,
                )
                if json_mode:
                    output = {"success": True, "removed": change.changed}
                    typer.echo(orjson.dumps(output).decode())
                elif change.changed:
                    typer.echo(
                        f"✓ Removed dependency: {issue_ref} {dep_type} {target}",
                    )
                else:
                    typer.echo(f"No dependency: {issue_ref} {dep_type} {target}")

            elif subcommand == "list":
                listing = list_dependencies(storage, source_id)

                if json_mode:
                    typer.echo(orjson.dumps(listing.to_dict()).decode())
                elif listing.blocked_by or listing.blocking:
                    for s in listing.blocked_by:
                        typer.echo(f"  ← {s.ref} blocks this ({s.status.value})")
                    for s in listing.blocking:
                        typer.echo(f"  → blocks {s.ref} ({s.status.value})")
                else:
                    typer.echo("No dependencies")
            else:
                echo_error(f"Unknown subcommand: {subcommand}")
                raise typer.Exit(1)

        except typer.Exit:
            raise
        except (ValueError, RuntimeError) as e:
            echo_error(str(e))
            raise typer.Exit(1)
