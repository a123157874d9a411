"""fitbridge metrics: list what can be synced."""

from __future__ import annotations

import click


@click.command()
def metrics() -> None:
    """List the metrics fitbridge knows how to sync."""
    from rich.console import Console
    from rich.table import Table

    from fitbridge.health.registry import MetricRegistry

    registry = MetricRegistry()
    registry.discover()

    table = Table(title="Syncable metrics")
    table.add_column("Metric", style="bold")
    table.add_column("Apple Health type")
    table.add_column("Google Fit type")
    table.add_column("Grouping")

    for name in registry.list_names():
        spec = registry.get(name)
        table.add_row(name, spec.source_type, spec.data_type_name, spec.aggregation.value)

    Console().print(table)
