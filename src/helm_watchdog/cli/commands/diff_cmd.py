"""hwd diff <old> <new> - Compare two cached chart versions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_watchdog.cli.options import OutputOption, StorageDirOption, open_storage
from helm_watchdog.core.sync import load_cache
from helm_watchdog.core.version_diff import UnknownVersionError, diff_versions
from helm_watchdog.output.formatters import output_diff

app = typer.Typer()


@app.callback(invoke_without_command=True)
def diff(
    old: str = typer.Argument(help="Base chart version"),
    new: str = typer.Argument(help="Chart version to compare against the base"),
    output: str = OutputOption,
    storage_dir: Optional[Path] = StorageDirOption,
) -> None:
    """Show image and values changes between two chart versions."""
    storage = open_storage(storage_dir)
    payload = load_cache(storage)
    if payload is None:
        typer.echo("No cached versions. Run 'hwd sync' first.", err=True)
        raise typer.Exit(code=1)
    try:
        result = diff_versions(storage, payload, old, new)
    except UnknownVersionError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    output_diff(result, output)
