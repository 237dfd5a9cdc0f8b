"""``loadpulse init``: write a default configuration file."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from loadpulse._internal.config import default_config_dict

console = Console(stderr=True)


def init_cmd(
    path: Path = typer.Argument(
        Path("config.json"),
        help="Where to write the configuration file.",
        dir_okay=False,
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing file.",
    ),
) -> None:
    """Write a configuration file populated with the default values."""
    if path.exists() and not force:
        console.print(f"[red]File already exists:[/red] {path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    path.write_text(json.dumps(default_config_dict(), indent=2) + "\n", encoding="utf-8")
    console.print(f"[green]Created config:[/green] {path}")
