"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console

from helm_watchdog.models.cache import StoredVersion, SyncResult
from helm_watchdog.models.diff import VersionDiff
from helm_watchdog.models.images import ImageEntry, ImageValidationPayload, count_validation_statuses

console = Console()


def _emit(data: Any, fmt: str) -> bool:
    """Print structured formats; returns False when the caller should render a table."""
    if fmt == "json":
        console.print_json(json.dumps(data, indent=2, default=str))
        return True
    if fmt == "yaml":
        console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), markup=False)
        return True
    return False


def output_versions(versions: list[StoredVersion], fmt: str) -> None:
    if _emit([v.sanitized().to_dict() for v in versions], fmt):
        return
    from helm_watchdog.output.tables import version_list_table
    console.print(version_list_table(versions))


def output_images(version: str, images: list[tuple[str, ImageEntry]], fmt: str) -> None:
    if _emit({path: entry.to_dict() for path, entry in images}, fmt):
        return
    if not images:
        console.print(f"[dim]No image data found for {version}.[/dim]")
        return
    from helm_watchdog.output.tables import images_table
    console.print(images_table(version, images))


def output_validation(payload: ImageValidationPayload, fmt: str) -> None:
    data = payload.to_dict()
    data["counts"] = count_validation_statuses(payload.images)
    if _emit(data, fmt):
        return
    from helm_watchdog.output.tables import validation_counts_line, validation_table
    console.print(validation_table(payload))
    console.print(validation_counts_line(payload))


def output_sync_result(result: SyncResult, fmt: str) -> None:
    if _emit(result.to_dict(), fmt):
        return
    from helm_watchdog.output.tables import sync_summary_panel
    console.print(sync_summary_panel(result))


def output_diff(diff: VersionDiff, fmt: str) -> None:
    data = {
        "oldVersion": diff.old_version,
        "newVersion": diff.new_version,
        "images": [
            {"path": c.path, "change": c.kind.value, "old": c.old, "new": c.new}
            for c in diff.image_changes
        ],
        "values": diff.values_changes,
        "summary": diff.summary,
    }
    if _emit(data, fmt):
        return
    if not diff.has_changes:
        console.print(f"[green]{diff.old_version} and {diff.new_version} are identical[/green]")
        return
    from helm_watchdog.output.tables import version_diff_table
    if diff.image_changes:
        console.print(version_diff_table(diff))
    if diff.values_changes:
        console.print("\n[bold]Values changes[/bold]")
        for line in diff.values_changes:
            console.print(f"  {line}", markup=False)
