"""hwd validation <version> - Show mirror registry validation results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from helm_watchdog.cli.options import OutputOption, StorageDirOption, open_storage
from helm_watchdog.core.sync import load_cache
from helm_watchdog.core.version_diff import UnknownVersionError, resolve_version
from helm_watchdog.models import OverallStatus
from helm_watchdog.models.images import ImageValidationPayload
from helm_watchdog.output.formatters import output_validation

app = typer.Typer()


@app.callback(invoke_without_command=True)
def validation(
    version: str = typer.Argument(help="Chart version or 'latest'"),
    status: Optional[str] = typer.Option(
        None, "--status", "-s", help="Only show images with this status: all_found, partial, missing, error",
    ),
    output: str = OutputOption,
    storage_dir: Optional[Path] = StorageDirOption,
) -> None:
    """Show which images of a chart version exist in the mirror registry."""
    storage = open_storage(storage_dir)
    payload = load_cache(storage)
    if payload is None:
        typer.echo("No cached versions. Run 'hwd sync' first.", err=True)
        raise typer.Exit(code=1)
    try:
        stored = resolve_version(payload, version)
    except UnknownVersionError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    if stored.image_validation is None:
        typer.echo(f"Version {stored.version} has no validation data.", err=True)
        raise typer.Exit(code=1)

    result = ImageValidationPayload.from_dict(json.loads(storage.read_content(stored.image_validation.url)))
    if status:
        wanted = OverallStatus.from_str(status)
        result.images = [r for r in result.images if r.status is wanted]
    output_validation(result, output)
