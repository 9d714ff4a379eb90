"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from helm_watchdog.models import VARIANT_NAMES
from helm_watchdog.models.cache import StoredVersion, SyncResult
from helm_watchdog.models.diff import VersionDiff
from helm_watchdog.models.images import ImageEntry, ImageValidationPayload, count_validation_statuses
from helm_watchdog.output.themes import styled_change, styled_overall, styled_variant


def version_list_table(versions: list[StoredVersion]) -> Table:
    table = Table(title="Cached Chart Versions", expand=True)
    table.add_column("Version", style="bold magenta", no_wrap=True)
    table.add_column("App Version", style="cyan")
    table.add_column("Created", style="dim", no_wrap=True)
    table.add_column("Validated", justify="center")
    table.add_column("Chart URL", style="dim", overflow="fold")

    for v in versions:
        table.add_row(
            v.version,
            v.app_version or "-",
            (v.created_at or "-")[:19],
            "[green]yes[/green]" if v.image_validation else "[dim]no[/dim]",
            v.chart_url,
        )
    return table


def images_table(version: str, images: list[tuple[str, ImageEntry]]) -> Table:
    table = Table(title=f"Images in {version}", expand=True)
    table.add_column("Path", style="cyan")
    table.add_column("Repository", style="bold")
    table.add_column("Tag", style="magenta", no_wrap=True)
    for path, entry in images:
        table.add_row(path, entry.repository, entry.tag)
    return table


def validation_table(payload: ImageValidationPayload) -> Table:
    table = Table(
        title=f"Image Validation {payload.version} ({payload.host}/{payload.namespace})",
        expand=True,
    )
    table.add_column("Image", style="bold", no_wrap=True)
    table.add_column("Source", style="dim")
    for name in VARIANT_NAMES:
        table.add_column(name.value, no_wrap=True)
    table.add_column("Status", no_wrap=True)

    for record in payload.images:
        cells = []
        for name in VARIANT_NAMES:
            check = record.variant(name)
            if check is None:
                cells.append("-")
            elif check.http_status is not None:
                cells.append(f"{styled_variant(check.status)} [dim]{check.http_status}[/dim]")
            else:
                cells.append(styled_variant(check.status))
        table.add_row(
            record.target_image_name,
            f"{record.source_repository}:{record.source_tag}",
            *cells,
            styled_overall(record.status),
        )
    return table


def validation_counts_line(payload: ImageValidationPayload) -> str:
    counts = count_validation_statuses(payload.images)
    return (
        f"{counts['total']} image(s): "
        f"[green]{counts['all_found']} all_found[/green], "
        f"[yellow]{counts['partial']} partial[/yellow], "
        f"[red]{counts['missing']} missing[/red], "
        f"[red bold]{counts['error']} error[/red bold]"
    )


def sync_summary_panel(result: SyncResult) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("Processed", str(result.processed))
    table.add_row("Created", str(len(result.created)))
    table.add_row("Refreshed", str(len(result.refreshed)))
    table.add_row("Skipped", str(result.skipped))
    if result.failed:
        table.add_row("Failed", f"[red]{len(result.failed)}[/red]")
    if result.created:
        table.add_row("New Versions", ", ".join(result.created))
    if result.refreshed:
        table.add_row("Refreshed Versions", ", ".join(result.refreshed))
    for version, reason in result.failed.items():
        table.add_row(f"Failed {version}", f"[red]{reason}[/red]")
    if result.unmatched_forced:
        table.add_row("Not In Index", ", ".join(result.unmatched_forced))
    table.add_row("Last Updated", result.last_updated or "-")

    border = "red" if result.failed else "green"
    return Panel(table, title="[bold]Sync Summary[/bold]", border_style=border)


def version_diff_table(diff: VersionDiff) -> Table:
    table = Table(title=f"Image changes {diff.old_version} -> {diff.new_version}", expand=True)
    table.add_column("Path", style="cyan")
    table.add_column("Change", no_wrap=True)
    table.add_column("Before", style="dim")
    table.add_column("After", style="bold")
    for c in diff.image_changes:
        table.add_row(c.path, styled_change(c.kind), c.old or "-", c.new or "-")
    return table
