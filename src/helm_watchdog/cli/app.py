"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="hwd",
    help="Helm Watchdog - Track chart releases and their mirrored images.",
    no_args_is_help=True,
)


def _register_commands() -> None:
    from helm_watchdog.cli.commands.sync_cmd import app as sync_app
    from helm_watchdog.cli.commands.list_cmd import app as list_app
    from helm_watchdog.cli.commands.images_cmd import app as images_app
    from helm_watchdog.cli.commands.validation_cmd import app as validation_app
    from helm_watchdog.cli.commands.diff_cmd import app as diff_app

    app.add_typer(sync_app, name="sync", help="Sync chart versions and validate images")
    app.add_typer(list_app, name="list", help="List cached chart versions")
    app.add_typer(images_app, name="images", help="Show images of a chart version")
    app.add_typer(validation_app, name="validation", help="Show registry validation results")
    app.add_typer(diff_app, name="diff", help="Compare two chart versions")


_register_commands()


def main() -> None:
    app()
