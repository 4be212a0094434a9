from __future__ import annotations

import typer

from relnotes import __version__
from relnotes.cli.commands.generate import context, generate

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(generate)
app.command()(context)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
) -> None:
    """Release notes for the client and its pinned runtime dependency."""


def main() -> None:
    app()
