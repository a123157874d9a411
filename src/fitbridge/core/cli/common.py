"""Shared setup logic for CLI commands."""

from __future__ import annotations

import os
from pathlib import Path

import click

FITBRIDGE_DIR = Path.home() / ".fitbridge"
CONFIG_PATH = FITBRIDGE_DIR / "config.yaml"


def load_config(config_file: str | None = None):
    """Load config from ``config_file`` or ~/.fitbridge/config.yaml."""
    from fitbridge.core.config import Config

    path = config_file or str(CONFIG_PATH)
    if config_file and not Path(config_file).expanduser().exists():
        raise click.ClickException(f"Config file not found: {config_file}")
    return Config(config_file=path)


def configure_logging(config, verbose: bool = False) -> None:
    from fitbridge.core.utils.logging import setup_logging

    level = "DEBUG" if verbose else str(config.get("logging.level", "INFO"))
    log_file = config.get("logging.file") or None
    if log_file:
        config.ensure_directories()
        log_file = os.path.join(config.get("paths.log_dir"), log_file)
    setup_logging(level=level, log_file=log_file)


def create_auth(config, scopes: list[str] | None = None):
    """Build the OAuth credential provider from config."""
    from fitbridge.core.auth import GoogleOAuth

    return GoogleOAuth(
        credentials_path=config.get("google.client_secrets_path"),
        token_path=config.get("google.token_path"),
        scopes=scopes or config.get("google.scopes"),
    )


def rich_progress_factory(console):
    """Progress factory for the pipeline: one transient bar per phase."""
    from fitbridge.core.progress import RichProgress

    def factory(description: str) -> RichProgress:
        return RichProgress(description, console=console)

    return factory
