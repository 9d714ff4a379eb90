"""hwd images <version> - Show the image manifest of a cached version."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_watchdog.cli.options import OutputOption, StorageDirOption, open_storage
from helm_watchdog.core.image_manifest import parse_images_yaml, sort_image_entries
from helm_watchdog.core.sync import load_cache
from helm_watchdog.core.version_diff import UnknownVersionError, resolve_version
from helm_watchdog.output.formatters import output_images

app = typer.Typer()


@app.callback(invoke_without_command=True)
def images(
    version: str = typer.Argument(help="Chart version or 'latest'"),
    output: str = OutputOption,
    storage_dir: Optional[Path] = StorageDirOption,
) -> None:
    """Show the container images declared by a chart version."""
    storage = open_storage(storage_dir)
    payload = load_cache(storage, with_inline=True)
    if payload is None:
        typer.echo("No cached versions. Run 'hwd sync' first.", err=True)
        raise typer.Exit(code=1)
    try:
        stored = resolve_version(payload, version)
    except UnknownVersionError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    text = stored.images.inline
    if text is None:
        text = storage.read_content(stored.images.url)
    output_images(stored.version, sort_image_entries(parse_images_yaml(text)), output)
