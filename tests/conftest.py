"""Shared test fixtures for fitbridge."""

import os
import tempfile
from pathlib import Path

import pytest

from fitbridge.core.exceptions import APIError, GoogleFitAPIError


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
        },
        "export": {"path": os.path.join(tmp_dir, "export.xml")},
        "upload": {"chunk_size": 50},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


def export_xml(*elements: str) -> str:
    """Wrap element snippets in a minimal HealthData document."""
    body = "\n".join(f"  {e}" for e in elements)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE HealthData [
<!ELEMENT HealthData (ExportDate,Me,(Record|Workout)*)>
]>
<HealthData locale="en_US">
  <ExportDate value="2024-02-01 09:00:00 +0000"/>
  <Me HKCharacteristicTypeIdentifierDateOfBirth=""/>
{body}
</HealthData>
"""


def record(type_: str, value: str, start: str, end: str | None = None, unit: str = "") -> str:
    unit_attr = f' unit="{unit}"' if unit else ""
    return (
        f'<Record type="{type_}" sourceName="iPhone"{unit_attr} value="{value}" '
        f'startDate="{start}" endDate="{end or start}"/>'
    )


@pytest.fixture
def write_export(tmp_dir):
    """Write an export.xml built from element snippets and return its path."""

    def _write(*elements: str) -> Path:
        path = Path(tmp_dir) / "export.xml"
        path.write_text(export_xml(*elements), encoding="utf-8")
        return path

    return _write


class StaticTokenAuth:
    """Credential provider returning a fixed token (None = unauthorized)."""

    def __init__(self, token: str | None = "test-token"):
        self.token = token
        self.calls = 0

    def get_access_token(self) -> str | None:
        self.calls += 1
        return self.token


class FakeFitClient:
    """In-memory stand-in for GoogleFitClient.

    ``fail_patches`` holds 1-based patch call numbers that raise a transport
    error; ``fail_sessions`` makes every session upsert answer 403.
    """

    def __init__(self, data_sources=None, fail_patches=(), fail_sessions=False):
        self.data_sources = list(data_sources or [])
        self.created: list[dict] = []
        self.patches: list[tuple[str, dict]] = []
        self.sessions: list[dict] = []
        self.fail_patches = set(fail_patches)
        self.fail_sessions = fail_sessions
        self.list_calls = 0

    def list_data_sources(self, data_type_names=None):
        self.list_calls += 1
        return list(self.data_sources)

    def create_data_source(self, body):
        created = dict(body, dataStreamId=f"raw:{body['dataType']['name']}:{body['dataStreamName']}")
        self.created.append(body)
        self.data_sources.append(created)
        return created

    def patch_dataset(self, data_source_id, dataset):
        self.patches.append((data_source_id, dataset))
        if len(self.patches) in self.fail_patches:
            raise APIError("Patch dataset failed: connection reset")
        return dataset

    def update_session(self, session_body):
        if self.fail_sessions:
            raise GoogleFitAPIError("Upsert failed", status=403, payload={"error": {"message": "forbidden"}})
        self.sessions.append(session_body)
        return session_body


@pytest.fixture
def auth():
    return StaticTokenAuth()


@pytest.fixture
def make_auth():
    return StaticTokenAuth


@pytest.fixture
def fake_client():
    return FakeFitClient()


@pytest.fixture
def make_client():
    return FakeFitClient


@pytest.fixture(name="record")
def record_fixture():
    """Build a <Record> snippet: record(type_, value, start, end=None, unit="")."""
    return record
