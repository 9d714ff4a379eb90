"""hwd list - List cached chart versions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_watchdog.cli.options import OutputOption, StorageDirOption, open_storage
from helm_watchdog.core.sync import load_cache
from helm_watchdog.output.formatters import output_versions

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def list_versions(
    output: str = OutputOption,
    storage_dir: Optional[Path] = StorageDirOption,
) -> None:
    """List cached chart versions, newest first."""
    payload = load_cache(open_storage(storage_dir))
    if payload is None or not payload.versions:
        console.print("[dim]No cached versions. Run 'hwd sync' first.[/dim]")
        return
    output_versions(payload.versions, output)
    if output == "table" and payload.last_updated:
        console.print(f"[dim]Last updated {payload.last_updated}[/dim]")
