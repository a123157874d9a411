"""Session upload: create the session, then its linked segment dataset.

There is no rollback.  If the segments fail after the session was created,
the session stays in Google Fit without data and the failure is logged.
"""

from __future__ import annotations

from loguru import logger

from fitbridge.core.auth import CredentialProvider
from fitbridge.core.exceptions import APIError
from fitbridge.health.models import Session, UploadReport

from .client import GoogleFitClient
from .uploader import build_dataset, describe_error

SESSION_APPLICATION = {"name": "Apple Health Sync", "version": "1.0"}


class SessionUploader:
    """Upsert sessions and the datasets that hang off their time window."""

    def __init__(self, client: GoogleFitClient, application: dict[str, str] | None = None):
        self.client = client
        self.application = application or dict(SESSION_APPLICATION)

    def upload_session(self, auth: CredentialProvider, session: Session) -> bool:
        """PUT the session keyed by its own id. Returns False (and logs) on failure."""
        if not auth.get_access_token():
            logger.error(f"No access token available; session {session.id} not created")
            return False
        try:
            self.client.update_session(session.to_fit_session(self.application))
        except APIError as e:
            logger.error(f"Error inserting session {session.id}: {describe_error(e)}")
            return False
        logger.info(f"Session inserted: {session.id}")
        return True

    def upload_linked_dataset(self, auth: CredentialProvider, data_source_id: str, session: Session) -> UploadReport:
        """Write exactly the session's segments as one dataset."""
        if not session.segments:
            return UploadReport()
        if not auth.get_access_token():
            logger.error(f"No access token available; segments of {session.id} not uploaded")
            return UploadReport(total_points=len(session.segments), authorized=False)

        report = UploadReport(total_points=len(session.segments), chunks_attempted=1)
        try:
            self.client.patch_dataset(data_source_id, build_dataset(data_source_id, session.segments))
        except APIError as e:
            message = describe_error(e)
            report.chunks_failed = 1
            report.errors.append(message)
            logger.error(f"Segments for session {session.id} failed, session kept without data: {message}")
            return report

        report.points_uploaded = len(session.segments)
        logger.info(f"Uploaded {len(session.segments)} segments for session {session.id}")
        return report

