"""Command-line entry point: ``loadpulse run``, ``loadpulse init``, ``--version``."""

from __future__ import annotations

import typer

from loadpulse import __version__
from loadpulse.cli.init_cmd import init_cmd
from loadpulse.cli.run import run_cmd

app = typer.Typer(
    name="loadpulse",
    help=(
        "Send a paced mix of GET and POST requests to a message API, "
        "either for a fixed duration or until a request quota is used up."
    ),
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command(
    "run",
    help="Start a load test (quota or interval mode) and report the outcome.",
)(run_cmd)
app.command(
    "init",
    help="Create a config.json holding the default run settings.",
)(init_cmd)


def _print_version(requested: bool) -> None:
    if requested:
        typer.echo(f"loadpulse {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Print the installed loadpulse version.",
        callback=_print_version,
        is_eager=True,
    ),
) -> None:
    """Message API load generator."""
