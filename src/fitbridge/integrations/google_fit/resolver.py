"""Data-source get-or-create.

A metric's data source is identified by its sanitized display name, so
looking it up by ``dataStreamName`` makes creation idempotent across runs.
"""

from __future__ import annotations

import re
from typing import Any

from loguru import logger

from fitbridge.health.models import DataSource

from .client import GoogleFitClient

_INVALID_ID_CHARS = re.compile(r"[^a-z0-9_]")

DEFAULT_APPLICATION = {"name": "AppleHealthSyncer"}


def sanitize_id(name: str) -> str:
    """Lowercase and replace anything outside ``[a-z0-9_]`` with ``_``."""
    return _INVALID_ID_CHARS.sub("_", name.lower())


class DataSourceResolver:
    """Resolve display names to Google Fit data-source ids, creating sources on first use.

    Args:
        client: Google Fit API client.
        application_name: Name recorded on created sources.
    """

    def __init__(self, client: GoogleFitClient, application_name: str = DEFAULT_APPLICATION["name"]):
        self.client = client
        self.application_name = application_name
        self._cache: dict[str, str] = {}

    def find(self, display_name: str) -> DataSource | None:
        """Return the remote data source whose stream name matches, if any."""
        stream_name = sanitize_id(display_name)
        for payload in self.client.list_data_sources():
            if payload.get("dataStreamName") == stream_name:
                return DataSource.from_api(payload)
        return None

    def resolve(self, data_type_name: str, display_name: str, data_type: dict[str, Any] | None = None) -> str:
        """Return the data-source id for ``display_name``, creating the source if needed.

        API errors propagate: without a data source nothing can be written.
        """
        stream_name = sanitize_id(display_name)
        if stream_name in self._cache:
            return self._cache[stream_name]

        existing = self.find(display_name)
        if existing is not None:
            logger.info(f"Using existing data source: {stream_name}")
            self._cache[stream_name] = existing.id
            return existing.id

        created = self.client.create_data_source(self._build_body(stream_name, data_type_name, data_type))
        data_source_id = created.get("dataStreamId", "")
        logger.info(f"Created data source: {stream_name} ({data_source_id})")
        self._cache[stream_name] = data_source_id
        return data_source_id

    def _build_body(self, stream_name: str, data_type_name: str, data_type: dict[str, Any] | None) -> dict[str, Any]:
        return {
            "dataStreamName": stream_name,
            "type": "raw",
            "application": {"name": self.application_name},
            "dataType": data_type or {"name": data_type_name},
            "device": {
                "uid": f"device_{stream_name}",
                "type": "watch",
                "manufacturer": "Apple",
                "model": "Health Export",
                "version": "1",
            },
        }
