"""Google Fit REST client.

Thin wrapper over the Fitness v1 discovery service from
``google-api-python-client``.  Every call goes through ``_execute`` so HTTP
failures surface as :class:`GoogleFitAPIError` (status + decoded payload)
and transport failures as :class:`APIError`.
"""

from __future__ import annotations

import json
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from fitbridge.core.exceptions import APIError, GoogleFitAPIError
from fitbridge.health.normalize import ms_to_rfc3339

USER_ID = "me"


class GoogleFitClient:
    """Google Fitness v1 API wrapper.

    Args:
        auth: Object exposing ``get_fitness_service()``
            (a :class:`~fitbridge.core.auth.GoogleOAuth`).
        service: Pre-built service resource; skips ``auth`` entirely.
    """

    def __init__(self, auth=None, service=None):
        if auth is None and service is None:
            raise ValueError("GoogleFitClient needs an auth provider or a service")
        self.auth = auth
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = self.auth.get_fitness_service()
            if self._service is None:
                raise APIError("Google Fitness service unavailable: not authorized")
        return self._service

    @staticmethod
    def _execute(request, operation: str) -> Any:
        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            payload = _decode_error(e.content)
            raise GoogleFitAPIError(f"{operation} failed ({status}): {payload}", status=status, payload=payload) from e
        except (OSError, httplib2.HttpLib2Error, GoogleAuthError) as e:
            raise APIError(f"{operation} failed: {e}") from e

    # Data sources
    def list_data_sources(self, data_type_names: list[str] | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {"userId": USER_ID}
        if data_type_names:
            kwargs["dataTypeName"] = data_type_names
        result = self._execute(self.service.users().dataSources().list(**kwargs), "List data sources")
        return (result or {}).get("dataSource", []) or []

    def create_data_source(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            self.service.users().dataSources().create(userId=USER_ID, body=body),
            f"Create data source {body.get('dataStreamName')!r}",
        )

    # Datasets
    def patch_dataset(self, data_source_id: str, dataset: dict[str, Any]) -> dict[str, Any]:
        dataset_id = f"{dataset['minStartTimeNs']}-{dataset['maxEndTimeNs']}"
        return self._execute(
            self.service.users()
            .dataSources()
            .datasets()
            .patch(userId=USER_ID, dataSourceId=data_source_id, datasetId=dataset_id, body=dataset),
            f"Patch dataset {dataset_id}",
        )

    # Sessions
    def update_session(self, session_body: dict[str, Any]) -> dict[str, Any]:
        """PUT a session; the same id overwrites the previous version."""
        return self._execute(
            self.service.users().sessions().update(userId=USER_ID, sessionId=session_body["id"], body=session_body),
            f"Upsert session {session_body['id']}",
        )

    def list_sessions(self, start_ms: int, end_ms: int) -> list[dict[str, Any]]:
        """All sessions overlapping ``[start_ms, end_ms]``, following page tokens."""
        sessions: list[dict[str, Any]] = []
        page_token = None
        while True:
            kwargs: dict[str, Any] = {
                "userId": USER_ID,
                "startTime": ms_to_rfc3339(start_ms),
                "endTime": ms_to_rfc3339(end_ms),
            }
            if page_token:
                kwargs["pageToken"] = page_token
            result = self._execute(self.service.users().sessions().list(**kwargs), "List sessions") or {}
            sessions.extend(result.get("session", []) or [])
            page_token = result.get("nextPageToken")
            if not page_token:
                return sessions


def _decode_error(content: bytes | str | None) -> Any:
    if not content:
        return ""
    text = content.decode("utf-8", errors="ignore") if isinstance(content, bytes) else content
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
