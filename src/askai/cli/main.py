"""askai CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from askai.cli.ask import ask_cmd
from askai.cli.chat import chat_cmd
from askai.cli.index import index_app
from askai.cli.settings import config_app


def _installed_version() -> str:
    try:
        return importlib.metadata.version("askai")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"askai {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="askai",
    help=(
        "askai — terminal assistant with a deduplicated answer archive.\n\n"
        "  askai ask \"...\"   Stream one answer, then archive and index it.\n"
        "  askai chat        Interactive loop over the same pipeline."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """askai — terminal assistant with a deduplicated answer archive."""


app.command("ask")(ask_cmd)
app.command("chat")(chat_cmd)
app.add_typer(config_app, name="config")
app.add_typer(index_app, name="index")


@app.command("version")
def version_cmd() -> None:
    """Show the installed askai version."""
    typer.echo(f"askai {_installed_version()}")


if __name__ == "__main__":
    app()
