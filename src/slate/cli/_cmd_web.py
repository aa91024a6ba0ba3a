"""Web server commands for slate CLI."""

from __future__ import annotations

import typer

from slate.constants import DEFAULT_SLATE_DIR

from ._helpers import SortedGroup

web_app = typer.Typer(
    name="web",
    help="HTTP API server for slate.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def register(app: typer.Typer) -> None:
    """Register the web command group."""
    app.add_typer(web_app)

    @web_app.command("serve")
    def serve(
        host: str | None = typer.Option(None, help="Host to bind to"),
        port: int | None = typer.Option(None, help="Port to listen on"),
        log_level: str = typer.Option("warning", help="uvicorn log level"),
        slate_dir: str = typer.Option(
            DEFAULT_SLATE_DIR,
            help="Path to .slate directory",
        ),
    ) -> None:
        """Serve the dependency API."""
        try:
            import uvicorn
        except ImportError:
            typer.echo(
                "Error: web dependencies not installed. "
                "Install with: pip install 'slate[web]'",
                err=True,
            )
            raise typer.Exit(1) from None

        from pathlib import Path

        from slate.cli._helpers import find_slate_dir
        from slate.config import get_web_settings
        from slate.web import create_app

        resolved_dir = slate_dir if Path(slate_dir).is_dir() else find_slate_dir()

        if not Path(resolved_dir).is_dir():
            typer.echo(
                "Error: slate is not initialized. Run 'slate init' first.",
                err=True,
            )
            raise typer.Exit(1)

        config_host, config_port = get_web_settings(resolved_dir)
        bind_host = host or config_host
        bind_port = port or config_port

        fastapi_app = create_app(slate_dir=resolved_dir)

        typer.echo(f"slate api → http://{bind_host}:{bind_port}")
        uvicorn.run(fastapi_app, host=bind_host, port=bind_port, log_level=log_level)
