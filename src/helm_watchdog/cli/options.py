"""Shared CLI options."""

from __future__ import annotations

from pathlib import Path

import typer

from helm_watchdog.config.settings import settings
from helm_watchdog.core.storage import LocalStorage

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
StorageDirOption = typer.Option(None, "--storage-dir", help="Artifact directory (default: HELM_WATCHDOG_STORAGE_DIR or .cache/helm)")


def open_storage(storage_dir: Path | None) -> LocalStorage:
    return LocalStorage(storage_dir or settings.storage_dir, prefix=settings.storage_prefix)
