"""
Aggregation strategies.

Each aggregator receives the extractor's points one at a time and, once the
export has been fully read, turns them into upload batches or sessions.
Batches come out sorted by start time because the dataset window of an
upload is taken from its first and last point.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import UTC, datetime

from .metrics import MetricSpec
from .models import Aggregation, ExtractionResult, MetricPoint, Session
from .normalize import MIN_INTERVAL_MS

_KEY_FORMATS = {
    "day": "%Y-%m-%d",
    "minute": "%Y-%m-%dT%H:%M",
}


def bucket_key(timestamp_ms: int, granularity: str) -> str:
    """UTC calendar key for a timestamp: ``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM``."""
    try:
        fmt = _KEY_FORMATS[granularity]
    except KeyError:
        raise ValueError(f"Unknown granularity {granularity!r}; expected 'day' or 'minute'") from None
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).strftime(fmt)


def _by_start(points: list[MetricPoint]) -> list[MetricPoint]:
    return sorted(points, key=lambda p: (p.start_ms, p.end_ms))


class Aggregator(ABC):
    """Collects points during the scan and emits upload groups at the end."""

    def __init__(self, spec: MetricSpec):
        self.spec = spec

    @abstractmethod
    def add(self, point: MetricPoint) -> None:
        """Take one extracted point."""

    @abstractmethod
    def finalize(self, result: ExtractionResult) -> None:
        """Close every open bucket and write batches or sessions into ``result``."""


class PassThroughAggregator(Aggregator):
    """Scalar metrics: one source record, one point, one batch for the lot."""

    def __init__(self, spec: MetricSpec):
        super().__init__(spec)
        self._points: list[MetricPoint] = []

    def add(self, point: MetricPoint) -> None:
        self._points.append(point)

    def finalize(self, result: ExtractionResult) -> None:
        if self._points:
            result.batches.append(_by_start(self._points))


class DailyAggregator(Aggregator):
    """Steps and distance: raw intervals grouped per UTC day, each day uploaded on its own."""

    def __init__(self, spec: MetricSpec):
        super().__init__(spec)
        self._days: dict[str, list[MetricPoint]] = defaultdict(list)

    def add(self, point: MetricPoint) -> None:
        self._days[bucket_key(point.start_ms, "day")].append(point)

    def finalize(self, result: ExtractionResult) -> None:
        for day in sorted(self._days):
            result.batches.append(_by_start(self._days[day]))


class MinuteSumAggregator(Aggregator):
    """Calories: values summed per UTC minute, one minute-long point per bucket."""

    def __init__(self, spec: MetricSpec):
        super().__init__(spec)
        self._minutes: dict[str, tuple[int, float]] = {}

    def add(self, point: MetricPoint) -> None:
        key = bucket_key(point.start_ms, "minute")
        bucket_start = point.start_ms - point.start_ms % MIN_INTERVAL_MS
        _, total = self._minutes.get(key, (bucket_start, 0.0))
        self._minutes[key] = (bucket_start, total + float(point.value))

    def finalize(self, result: ExtractionResult) -> None:
        if not self._minutes:
            return
        points = [
            MetricPoint(
                start_ms=start,
                end_ms=start + MIN_INTERVAL_MS,
                data_type_name=self.spec.data_type_name,
                value=total,
                value_format=self.spec.value_format,
            )
            for start, total in (self._minutes[key] for key in sorted(self._minutes))
        ]
        result.batches.append(points)


class SleepSessionAggregator(Aggregator):
    """Sleep stages grouped into one session per night (UTC day of the stage start)."""

    def __init__(self, spec: MetricSpec):
        super().__init__(spec)
        self._nights: dict[str, list[MetricPoint]] = defaultdict(list)

    def add(self, point: MetricPoint) -> None:
        self._nights[bucket_key(point.start_ms, "day")].append(point)

    def finalize(self, result: ExtractionResult) -> None:
        for night in sorted(self._nights):
            stages = _by_start(self._nights[night])
            result.sessions.append(
                Session(
                    id=Session.new_id("sleep"),
                    name=self.spec.session_name or "Sleep",
                    start_ms=min(p.start_ms for p in stages),
                    end_ms=max(p.end_ms for p in stages),
                    activity_type=self.spec.activity_type or 0,
                    segments=stages,
                )
            )


class WorkoutSessionAggregator(Aggregator):
    """One session per workout; the point's value is the energy burned."""

    def __init__(self, spec: MetricSpec):
        super().__init__(spec)
        self._workouts: list[MetricPoint] = []

    def add(self, point: MetricPoint) -> None:
        self._workouts.append(point)

    def finalize(self, result: ExtractionResult) -> None:
        for workout in _by_start(self._workouts):
            segments = [workout] if float(workout.value) > 0 else []
            result.sessions.append(
                Session(
                    id=Session.new_id(self.spec.name),
                    name=self.spec.session_name or self.spec.name.title(),
                    start_ms=workout.start_ms,
                    end_ms=workout.end_ms,
                    activity_type=self.spec.activity_type or 0,
                    segments=segments,
                )
            )


_AGGREGATORS: dict[Aggregation, type[Aggregator]] = {
    Aggregation.NONE: PassThroughAggregator,
    Aggregation.DAILY: DailyAggregator,
    Aggregation.MINUTE_SUM: MinuteSumAggregator,
    Aggregation.SLEEP_SESSIONS: SleepSessionAggregator,
    Aggregation.WORKOUT_SESSIONS: WorkoutSessionAggregator,
}


def create_aggregator(spec: MetricSpec) -> Aggregator:
    return _AGGREGATORS[spec.aggregation](spec)
