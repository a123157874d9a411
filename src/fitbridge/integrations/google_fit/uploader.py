"""Chunked dataset upload.

Points are written in fixed-size chunks, one ``PATCH`` per chunk, strictly
one request in flight at a time.  Google Fit treats each chunk's
``[minStartTimeNs, maxEndTimeNs]`` window as authoritative for that data
source, so callers must hand over points sorted by start time.

A failed chunk is logged and counted, never retried; the remaining chunks
are still attempted.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Sequence
from typing import Any

from loguru import logger

from fitbridge.core.auth import CredentialProvider
from fitbridge.core.exceptions import APIError, GoogleFitAPIError
from fitbridge.core.progress import NullProgress, ProgressSink
from fitbridge.health.models import MetricPoint, UploadReport
from fitbridge.health.normalize import ms_to_ns

from .client import GoogleFitClient


def chunked(points: Sequence[MetricPoint], size: int) -> Iterator[Sequence[MetricPoint]]:
    """Contiguous slices of at most ``size`` points, in original order."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    for i in range(0, len(points), size):
        yield points[i : i + size]


def build_dataset(data_source_id: str, points: Sequence[MetricPoint]) -> dict[str, Any]:
    """Dataset body whose window covers every point.

    Overlapping points (an InBed stage spanning the whole night) can end
    after the last-starting one, so the end is the latest end, not the last.
    """
    repaired = [p.repaired() for p in points]
    return {
        "dataSourceId": data_source_id,
        "minStartTimeNs": ms_to_ns(min(p.start_ms for p in repaired)),
        "maxEndTimeNs": ms_to_ns(max(p.end_ms for p in repaired)),
        "point": [p.to_fit_point() for p in repaired],
    }


def describe_error(error: APIError) -> str:
    if isinstance(error, GoogleFitAPIError) and error.status is not None:
        return f"API Error {error.status}: {error.payload}"
    return f"Upload Error: {error}"


class BatchUploader:
    """Upload point sequences to one data source in sequential chunks."""

    def __init__(self, client: GoogleFitClient):
        self.client = client

    def upload(
        self,
        auth: CredentialProvider,
        data_source_id: str,
        points: Sequence[MetricPoint],
        chunk_size: int = 100,
        progress: ProgressSink | None = None,
    ) -> UploadReport:
        """Write ``points`` and report what happened. Never raises for chunk failures."""
        progress = progress or NullProgress()

        if not auth.get_access_token():
            logger.error("No access token available; skipping upload")
            return UploadReport(total_points=len(points), authorized=False, errors=["No access token available"])

        if not points:
            logger.info("No data points to upload")
            return UploadReport()

        report = UploadReport(total_points=len(points))
        started = time.monotonic()
        processed = 0

        for chunk in chunked(points, chunk_size):
            dataset = build_dataset(data_source_id, chunk)
            report.chunks_attempted += 1
            try:
                self.client.patch_dataset(data_source_id, dataset)
                report.points_uploaded += len(chunk)
            except APIError as e:
                report.chunks_failed += 1
                message = describe_error(e)
                report.errors.append(message)
                logger.error(f"Chunk {dataset['minStartTimeNs']}-{dataset['maxEndTimeNs']} failed: {message}")

            processed += len(chunk)
            progress.on_progress(processed, len(points))

        logger.info(
            f"Upload finished in {time.monotonic() - started:.1f}s: "
            f"{report.points_uploaded}/{report.total_points} points, {report.chunks_failed} failed chunks"
        )
        return report
