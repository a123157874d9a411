"""fitbridge sync: push metrics from an export into Google Fit."""

from __future__ import annotations

import click


@click.command()
@click.argument("metric_names", nargs=-1)
@click.option("--all", "sync_all", is_flag=True, help="Sync every known metric, one after another.")
@click.option("--export", "export_path", type=click.Path(dir_okay=False), help="Path to export.xml.")
@click.option("--chunk-size", type=click.IntRange(min=1), help="Points per upload request.")
@click.option("--config", "config_file", help="Config file (default ~/.fitbridge/config.yaml).")
@click.option("--dry-run", is_flag=True, help="Parse and count only; no auth, no uploads.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
def sync(
    metric_names: tuple[str, ...],
    sync_all: bool,
    export_path: str | None,
    chunk_size: int | None,
    config_file: str | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Sync METRIC_NAMES (e.g. weight steps sleep) from the Apple Health export."""
    from rich.console import Console

    from fitbridge.core.cli.common import configure_logging, create_auth, load_config, rich_progress_factory
    from fitbridge.core.config import SyncSettings
    from fitbridge.core.exceptions import AuthenticationError, ConfigurationError, SourceFileError
    from fitbridge.health.pipeline import SyncPipeline
    from fitbridge.health.registry import MetricRegistry

    config = load_config(config_file)
    configure_logging(config, verbose)
    if export_path:
        config.set("export.path", export_path)

    try:
        settings = SyncSettings.from_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    if not settings.export_path:
        raise click.ClickException("No export path. Pass --export or set export.path in the config.")

    registry = MetricRegistry()
    registry.discover()
    names = registry.list_names() if sync_all else list(metric_names)
    if not names:
        raise click.UsageError("Name at least one metric, or pass --all. See 'fitbridge metrics'.")
    unknown = [n for n in names if n not in registry]
    if unknown:
        raise click.UsageError(f"Unknown metric(s): {', '.join(unknown)}. See 'fitbridge metrics'.")

    console = Console(stderr=True)
    pipeline = SyncPipeline(
        settings,
        create_auth(config, settings.scopes),
        registry=registry,
        progress_factory=rich_progress_factory(console),
        application_name=config.get("google.application_name", "AppleHealthSyncer"),
    )

    results = []
    for name in names:
        try:
            results.append(pipeline.run(name, chunk_size=chunk_size, dry_run=dry_run))
        except (SourceFileError, AuthenticationError) as e:
            raise click.ClickException(str(e))

    _print_summary(results, dry_run)


def _print_summary(results, dry_run: bool) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(title="Dry run" if dry_run else "Sync summary")
    table.add_column("Metric", style="bold")
    table.add_column("Records", justify="right")
    table.add_column("Dropped", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Sessions", justify="right")
    if not dry_run:
        table.add_column("Uploaded", justify="right")
        table.add_column("Failed chunks", justify="right")
        table.add_column("Status")

    for r in results:
        ex = r.extraction
        row = [r.metric, str(ex.parsed), str(ex.dropped), str(ex.point_count), str(len(ex.sessions))]
        if not dry_run:
            status = "ok" if r.ok else (r.error or "partial")
            row += [str(r.report.points_uploaded), str(r.report.chunks_failed), status]
        table.add_row(*row)

    Console().print(table)
