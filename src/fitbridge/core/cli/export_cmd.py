"""fitbridge export-sessions: dump Google Fit sessions to JSON."""

from __future__ import annotations

from datetime import datetime

import click

DEFAULT_SINCE = "2022-01-01"


def _date_to_ms(value: str) -> int:
    return int(datetime.strptime(value, "%Y-%m-%d").astimezone().timestamp() * 1000)


@click.command("export-sessions")
@click.option("--since", default=DEFAULT_SINCE, show_default=True, help="Start date (YYYY-MM-DD).")
@click.option("--until", default=None, help="End date (YYYY-MM-DD). Defaults to now.")
@click.option("--output", "output_path", default="google_fit_sessions.json", show_default=True)
@click.option("--config", "config_file", help="Config file (default ~/.fitbridge/config.yaml).")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
def export_sessions(since: str, until: str | None, output_path: str, config_file: str | None, verbose: bool) -> None:
    """Export Google Fit sessions between two dates to a JSON file."""
    from fitbridge.core.cli.common import configure_logging, create_auth, load_config
    from fitbridge.core.exceptions import APIError
    from fitbridge.health.session_export import export_sessions as fetch_sessions
    from fitbridge.health.session_export import write_sessions_json
    from fitbridge.integrations.google_fit import GoogleFitClient

    try:
        start_ms = _date_to_ms(since)
        end_ms = _date_to_ms(until) if until else int(datetime.now().timestamp() * 1000)
    except ValueError as e:
        raise click.BadParameter(f"Dates must be YYYY-MM-DD: {e}")
    if end_ms <= start_ms:
        raise click.BadParameter("--until must be after --since")

    config = load_config(config_file)
    configure_logging(config, verbose)

    client = GoogleFitClient(auth=create_auth(config))
    try:
        sessions = fetch_sessions(client, start_ms, end_ms)
    except APIError as e:
        raise click.ClickException(str(e))

    out = write_sessions_json(output_path, sessions)
    click.echo(f"Saved {len(sessions)} sessions to {out}")
