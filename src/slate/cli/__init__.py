"""Slate CLI commands for issue tracking."""

from __future__ import annotations

import typer

from ._helpers import SortedGroup

app = typer.Typer(
    help="slate - multi-project issue tracking with blocking dependencies",
    no_args_is_help=True,
    cls=SortedGroup,
)


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON for all commands",
    ),
) -> None:
    from ._json_state import set_json_flag

    set_json_flag(json_output)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


from . import (  # noqa: E402
    _cmd_dep,
    _cmd_doctor,
    _cmd_history,
    _cmd_init,
    _cmd_issue,
    _cmd_project,
    _cmd_web,
    _cmd_workflow,
)

for _mod in (
    _cmd_dep,
    _cmd_doctor,
    _cmd_history,
    _cmd_init,
    _cmd_issue,
    _cmd_project,
    _cmd_web,
    _cmd_workflow,
):
    _mod.register(app)


def main() -> None:
    """Run the Slate CLI application."""
    app()
