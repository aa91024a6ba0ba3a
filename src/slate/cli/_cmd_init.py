"""Initialization command for slate CLI."""

from __future__ import annotations

from pathlib import Path

import orjson
import typer

from slate.config import get_config_path, load_config, save_config
from slate.constants import DEFAULT_SLATE_DIR, DEFAULT_WEB_HOST, DEFAULT_WEB_PORT

from ._helpers import get_storage
from ._json_state import is_json_output


def register(app: typer.Typer) -> None:
    """Register the init command."""

    @app.command()
    def init(
        default_actor: str | None = typer.Option(
            None,
            "--default-actor",
            help="Actor recorded for changes that don't name one",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Initialize a new Slate tracker.

        Creates the .slate directory with an empty issues.jsonl and a
        config.toml. Running it again keeps existing data and config.
        """
        slate_path = Path(slate_dir)
        storage = get_storage(slate_dir, create_dir=True)
        storage.path.touch(exist_ok=True)

        config = load_config(slate_dir)
        config.setdefault("web", {"host": DEFAULT_WEB_HOST, "port": DEFAULT_WEB_PORT})
        if default_actor:
            config["default_actor"] = default_actor
        save_config(slate_dir, config)

        if is_json_output(json_output):
            typer.echo(
                orjson.dumps(
                    {
                        "slate_dir": str(slate_path),
                        "config": str(get_config_path(slate_dir)),
                    },
                ).decode(),
            )
            return

        typer.echo(f"✓ Initialized slate in {slate_path}")
        typer.echo(f"✓ Config written to {get_config_path(slate_dir)}")
