"""
Sync pipeline: one metric per run.

    export.xml ──► RecordExtractor ──► Aggregator ──► BatchUploader   (series)
                                                  └─► SessionUploader (sessions)

The export is drained completely before anything is uploaded, because
bucketing and sorting need the full record set.  Each run re-reads the
file; running several metrics means several passes.

Only an unreadable export or a missing credential aborts a run.  Record
and chunk failures are counted in the returned :class:`SyncResult`.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from fitbridge.core.auth import CredentialProvider
from fitbridge.core.config import SyncSettings
from fitbridge.core.exceptions import APIError, AuthenticationError, SourceFileError
from fitbridge.core.progress import NullProgress, ProgressSink
from fitbridge.integrations.google_fit import (
    BatchUploader,
    DataSourceResolver,
    GoogleFitClient,
    SessionUploader,
)

from .extractor import RecordExtractor
from .metrics import MetricSpec
from .models import ExtractionResult, UploadReport
from .registry import MetricRegistry

ProgressFactory = Callable[[str], AbstractContextManager[ProgressSink]]


def _no_progress(description: str) -> AbstractContextManager[ProgressSink]:
    return nullcontext(NullProgress())


@dataclass
class SyncResult:
    """What one metric run did."""

    metric: str
    extraction: ExtractionResult
    report: UploadReport = field(default_factory=UploadReport)
    sessions_created: int = 0
    sessions_failed: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report.ok and self.sessions_failed == 0


class _OffsetProgress:
    """Turns per-call upload progress into progress over the whole metric."""

    def __init__(self, sink: ProgressSink, offset: int, total: int):
        self.sink = sink
        self.offset = offset
        self.total = total

    def on_progress(self, current: int, total: int | None) -> None:
        self.sink.on_progress(self.offset + current, self.total)


class SyncPipeline:
    """Run extraction and upload for configured metrics.

    Args:
        settings: Export path, default chunk size, scopes.
        auth: Credential provider (read before every upload call).
        client: Google Fit client. Built from ``auth`` when omitted.
        registry: Metric table. Built-ins when omitted.
        progress_factory: ``description -> context manager yielding a ProgressSink``.
    """

    def __init__(
        self,
        settings: SyncSettings,
        auth: CredentialProvider,
        client: GoogleFitClient | None = None,
        registry: MetricRegistry | None = None,
        progress_factory: ProgressFactory | None = None,
        application_name: str = "AppleHealthSyncer",
    ):
        self.settings = settings
        self.auth = auth
        self.client = client or GoogleFitClient(auth=auth)
        self.registry = registry or MetricRegistry()
        self.progress_factory = progress_factory or _no_progress
        self.resolver = DataSourceResolver(self.client, application_name=application_name)
        self.batch_uploader = BatchUploader(self.client)
        self.session_uploader = SessionUploader(self.client)

    def run(self, metric: str, chunk_size: int | None = None, dry_run: bool = False) -> SyncResult:
        """Sync one metric.

        Raises:
            KeyError: Unknown metric name.
            SourceFileError: The export is missing or unreadable.
            AuthenticationError: No access token could be obtained.
        """
        spec = self.registry.get(metric)
        export_path = Path(self.settings.export_path).expanduser()
        if not export_path.is_file():
            raise SourceFileError(f"Health export not found: {export_path}")

        if not dry_run and not self.auth.get_access_token():
            raise AuthenticationError(
                "No Google access token available. Check the OAuth client secrets and token cache."
            )

        logger.info(f"Starting {spec.name} sync from {export_path}")
        with self.progress_factory(f"Parsing {spec.name}") as sink:
            extraction = RecordExtractor(spec).extract(str(export_path), progress=sink)

        result = SyncResult(metric=spec.name, extraction=extraction)
        if dry_run or extraction.is_empty:
            return result

        try:
            if spec.produces_sessions:
                self._sync_sessions(spec, result)
            else:
                self._sync_series(spec, result, chunk_size or spec.chunk_size or self.settings.chunk_size)
        except APIError as e:
            # only series data-source resolution gets here; chunk errors are contained
            result.error = str(e)
            logger.error(f"{spec.name} sync stopped: {e}")
        return result

    def _sync_series(self, spec: MetricSpec, result: SyncResult, chunk_size: int) -> None:
        data_source_id = self.resolver.resolve(spec.data_type_name, spec.display_name, spec.data_type_schema())
        total = result.extraction.point_count

        with self.progress_factory(f"Uploading {spec.name}") as sink:
            offset = 0
            for batch in result.extraction.batches:
                report = self.batch_uploader.upload(
                    self.auth,
                    data_source_id,
                    batch,
                    chunk_size=chunk_size,
                    progress=_OffsetProgress(sink, offset, total),
                )
                result.report.merge(report)
                offset += len(batch)

    def _sync_sessions(self, spec: MetricSpec, result: SyncResult) -> None:
        sessions = result.extraction.sessions
        data_source_id: str | None = None

        if any(session.segments for session in sessions):
            # resolved up front: no session is written unless its segments can follow
            try:
                data_source_id = self.resolver.resolve(spec.data_type_name, spec.display_name, spec.data_type_schema())
            except APIError as e:
                result.error = str(e)
                result.sessions_failed = len(sessions)
                logger.error(f"{spec.name}: data source unavailable, {len(sessions)} sessions not uploaded: {e}")
                return

        with self.progress_factory(f"Uploading {spec.name} sessions") as sink:
            for done, session in enumerate(sessions, start=1):
                if self.session_uploader.upload_session(self.auth, session):
                    result.sessions_created += 1
                    if session.segments and data_source_id is not None:
                        result.report.merge(
                            self.session_uploader.upload_linked_dataset(self.auth, data_source_id, session)
                        )
                else:
                    result.sessions_failed += 1
                sink.on_progress(done, len(sessions))

        logger.info(f"{spec.name}: {result.sessions_created} sessions created, {result.sessions_failed} failed")
