"""Doctor command for slate CLI."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson
import typer

from slate.config import get_config_path
from slate.constants import DEFAULT_SLATE_DIR, STORAGE_FILENAME
from slate.deps import detect_cycles

from ._helpers import find_slate_dir, get_storage
from ._json_state import is_json_output

if TYPE_CHECKING:
    from slate.storage import JSONLStorage


def register(app: typer.Typer) -> None:
    """Register the doctor command."""

    @app.command()
    def doctor(
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        fix: bool = typer.Option(
            False,
            "--fix",
            help="Remove dependency edges that point at deleted issues",
        ),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Check tracker files and dependency graph integrity.

        Validates issues.jsonl, reports dependency edges pointing at missing
        issues, and reports dependency cycles.
        Exit code 0 = all OK, 1 = problems found.
        """
        if slate_dir == DEFAULT_SLATE_DIR and not Path(slate_dir).exists():
            slate_dir = find_slate_dir()

        checks: dict[str, dict[str, Any]] = {}
        slate_path = Path(slate_dir)

        checks["slate_dir"] = {
            "description": f"{slate_dir}/ directory exists",
            "passed": slate_path.is_dir(),
            "fix": "Run 'slate init' to create it",
        }

        issues_file = slate_path / STORAGE_FILENAME
        storage: JSONLStorage | None = None
        load_errors: list[str] = []
        if issues_file.exists():
            try:
                with issues_file.open("rb") as f:
                    for line in f:
                        if line.strip():
                            orjson.loads(line)
                storage = get_storage(slate_dir)
            except (OSError, ValueError, RuntimeError) as e:
                # Covers valid JSON whose records cannot be replayed too
                load_errors.append(str(e))
        checks["issues_jsonl"] = {
            "description": f"{slate_dir}/{STORAGE_FILENAME} is valid JSON",
            "passed": storage is not None,
            "fix": "Restore from backup or remove the malformed lines",
            "details": load_errors,
        }

        checks["config_toml"] = {
            "description": f"{slate_dir}/config.toml exists",
            "passed": get_config_path(slate_dir).exists(),
            "fix": "Run 'slate init' to create it",
        }

        if storage is not None:
            dangling = storage.find_dangling_dependencies()
            if fix and dangling:
                storage.remove_dependencies(dangling)
                typer.echo(
                    f"Fixed: Removed {len(dangling)} dangling dependency edge(s)",
                )
                dangling = []
            checks["dangling_dependencies"] = {
                "description": "All dependency edges point at existing issues",
                "passed": not dangling,
                "fix": "Run 'slate doctor --fix' to remove them",
                "details": [f"{d.blocker_id} -> {d.blocked_id}" for d in dangling],
            }

            cycles = detect_cycles(storage)
            checks["dependency_cycles"] = {
                "description": "Dependency graph has no cycles",
                "passed": not cycles,
                "fix": "Remove one edge of each cycle with 'slate dep ... remove'",
                "details": [" -> ".join(c) for c in cycles],
            }

        all_passed = all(c["passed"] for c in checks.values())

        if is_json_output(json_output):
            typer.echo(orjson.dumps({"ok": all_passed, "checks": checks}).decode())
        else:
            for check in checks.values():
                mark = "✓" if check["passed"] else "✗"
                typer.echo(f"{mark} {check['description']}")
                if not check["passed"]:
                    for detail in check.get("details", []):
                        typer.echo(f"    {detail}")
                    typer.echo(f"    Fix: {check['fix']}")

        if not all_passed:
            raise typer.Exit(1)
