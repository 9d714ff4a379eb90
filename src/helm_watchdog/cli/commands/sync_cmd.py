"""hwd sync - Pull new chart versions and validate their images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from helm_watchdog.cli.options import OutputOption, StorageDirOption, open_storage
from helm_watchdog.core.index_reader import IndexFetchError
from helm_watchdog.core.storage import StorageUnavailableError
from helm_watchdog.core.sync import SyncError, sync_helm_data
from helm_watchdog.output.formatters import output_sync_result

app = typer.Typer()
console = Console()
err_console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def sync(
    versions: Optional[List[str]] = typer.Option(
        None, "--version", "-V", help="Force refresh of a cached version (repeatable, comma separated allowed)",
    ),
    continue_on_error: Optional[bool] = typer.Option(
        None, "--continue-on-error/--stop-on-error",
        help="Keep going when one version fails (default: HELM_WATCHDOG_CONTINUE_ON_ERROR)",
    ),
    output: str = OutputOption,
    storage_dir: Optional[Path] = StorageDirOption,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Synchronize the chart index into the local artifact cache."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )

    forced = [v for raw in versions or [] for v in raw.split(",")]
    # structured output goes to stdout, so progress moves to stderr
    progress = err_console if output in ("json", "yaml") else console

    try:
        result = sync_helm_data(
            open_storage(storage_dir),
            force_versions=forced,
            continue_on_error=continue_on_error,
            log=lambda message: progress.print(f"[dim]{message}[/dim]"),
        )
    except StorageUnavailableError as e:
        err_console.print(f"[red]Storage unavailable:[/red] {e}")
        raise typer.Exit(code=1)
    except IndexFetchError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    except SyncError as e:
        err_console.print(f"[red]{e}[/red]")
        output_sync_result(e.result, output)
        raise typer.Exit(code=1)

    output_sync_result(result, output)
    if result.failed:
        raise typer.Exit(code=1)
