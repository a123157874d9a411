"""
Health data models.

Points and sessions are plain dataclasses.  A ``MetricPoint`` is never
mutated after creation; repairs and conversions produce a new point.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from .normalize import MIN_INTERVAL_MS, ms_to_ns, repair_interval

# ── Enumerations ─────────────────────────────────────────────────────


class ValueFormat(StrEnum):
    """Google Fit value slot a point's value is written to."""

    FLOAT = "fpVal"
    INTEGER = "intVal"


class Aggregation(StrEnum):
    """How extracted records are grouped before upload."""

    NONE = "none"
    DAILY = "daily"
    MINUTE_SUM = "minute_sum"
    SLEEP_SESSIONS = "sleep_sessions"
    WORKOUT_SESSIONS = "workout_sessions"

    @property
    def produces_sessions(self) -> bool:
        return self in (Aggregation.SLEEP_SESSIONS, Aggregation.WORKOUT_SESSIONS)


# ── Points ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MetricPoint:
    """One time-series value over ``[start_ms, end_ms]``."""

    start_ms: int
    end_ms: int
    data_type_name: str
    value: float | int
    value_format: ValueFormat = ValueFormat.FLOAT

    def repaired(self, min_duration_ms: int = MIN_INTERVAL_MS) -> MetricPoint:
        """Return a copy whose interval is at least non-degenerate."""
        start, end = repair_interval(self.start_ms, self.end_ms, min_duration_ms)
        if end == self.end_ms:
            return self
        return replace(self, end_ms=end)

    def to_fit_point(self) -> dict[str, Any]:
        value = int(self.value) if self.value_format == ValueFormat.INTEGER else float(self.value)
        return {
            "startTimeNanos": ms_to_ns(self.start_ms),
            "endTimeNanos": ms_to_ns(self.end_ms),
            "dataTypeName": self.data_type_name,
            "value": [{self.value_format.value: value}],
        }


@dataclass
class DataSource:
    """A remote data-source registration."""

    id: str
    display_name: str
    data_type_name: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> DataSource:
        return cls(
            id=payload.get("dataStreamId", ""),
            display_name=payload.get("dataStreamName", ""),
            data_type_name=(payload.get("dataType") or {}).get("name", ""),
        )


# ── Sessions ─────────────────────────────────────────────────────────


@dataclass
class Session:
    """A bounded-time activity (workout, sleep) with optional linked segments.

    The id is generated fresh on every run, so syncing the same export
    twice creates two remote sessions.
    """

    id: str
    name: str
    start_ms: int
    end_ms: int
    activity_type: int
    description: str = "Imported from Apple Health"
    segments: list[MetricPoint] = field(default_factory=list)

    @staticmethod
    def new_id(prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4()}"

    def to_fit_session(self, application: dict[str, str]) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "startTimeMillis": self.start_ms,
            "endTimeMillis": self.end_ms,
            "activityType": self.activity_type,
            "application": dict(application),
        }


# ── Results ──────────────────────────────────────────────────────────


@dataclass
class UploadReport:
    """Outcome of one or more batch uploads.

    Chunk failures never raise; they are counted here and logged.
    """

    total_points: int = 0
    chunks_attempted: int = 0
    chunks_failed: int = 0
    points_uploaded: int = 0
    authorized: bool = True
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.authorized and self.chunks_failed == 0

    def merge(self, other: UploadReport) -> UploadReport:
        self.total_points += other.total_points
        self.chunks_attempted += other.chunks_attempted
        self.chunks_failed += other.chunks_failed
        self.points_uploaded += other.points_uploaded
        self.authorized = self.authorized and other.authorized
        self.errors.extend(other.errors)
        return self


@dataclass
class ExtractionResult:
    """Everything one pass over the export produced for a single metric."""

    metric: str
    batches: list[list[MetricPoint]] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    parsed: int = 0
    dropped: int = 0

    @property
    def point_count(self) -> int:
        return sum(len(batch) for batch in self.batches)

    @property
    def is_empty(self) -> bool:
        return not self.sessions and self.point_count == 0
