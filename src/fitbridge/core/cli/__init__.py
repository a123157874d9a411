"""fitbridge CLI: entry point for sync, metrics, and export-sessions commands."""

import click

from fitbridge import __version__


@click.group()
@click.version_option(version=__version__, package_name="fitbridge")
def main() -> None:
    """fitbridge: sync an Apple Health export into Google Fit."""


# Register subcommands (lazy imports inside keep startup fast)
from .export_cmd import export_sessions
from .metrics_cmd import metrics
from .sync_cmd import sync

main.add_command(sync)
main.add_command(metrics)
main.add_command(export_sessions)
