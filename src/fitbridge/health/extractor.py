"""Streaming extraction from an Apple Health ``export.xml``.

Exports routinely run to several gigabytes, so the document is never
materialized: ``iter_elements`` walks it with ``iterparse`` and clears each
top-level element as soon as it closes.  Only matched attribute sets and
the aggregator's buckets stay in memory.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import IO
from xml.etree import ElementTree as ET

from loguru import logger

from fitbridge.core.exceptions import SourceFileError
from fitbridge.core.progress import NullProgress, ProgressSink

from .aggregator import create_aggregator
from .metrics import DEFAULT_SLEEP_STAGE, MetricSpec
from .models import Aggregation, ExtractionResult, MetricPoint, ValueFormat
from .normalize import convert_unit

PROGRESS_EVERY = 500

_DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
]


@dataclass(frozen=True)
class RawElement:
    """Tag and attributes of one opened element."""

    tag: str
    attributes: dict[str, str]


def iter_elements(source: str | IO[bytes], tags: Iterable[str] | None = None) -> Iterator[RawElement]:
    """Yield every opened element (optionally only those in ``tags``) in document order.

    Each call starts a fresh pass over ``source``.  Stopping iteration early
    simply stops reading.

    Raises:
        SourceFileError: The file cannot be opened or is not well-formed XML.
    """
    wanted = set(tags) if tags is not None else None
    root = None
    depth = 0
    try:
        for event, elem in ET.iterparse(source, events=("start", "end")):
            if event == "start":
                if root is None:
                    root = elem
                depth += 1
                if wanted is None or elem.tag in wanted:
                    yield RawElement(tag=elem.tag, attributes=dict(elem.attrib))
            else:
                depth -= 1
                if depth == 1:
                    # a direct child of the root just closed
                    root.clear()
    except OSError as e:
        raise SourceFileError(f"Cannot read health export {source!r}: {e}") from e
    except ET.ParseError as e:
        raise SourceFileError(f"Health export is not well-formed XML: {e}") from e


def parse_health_datetime(value: str) -> datetime | None:
    """Parse an export timestamp such as ``2024-01-01 08:00:00 -0800``.

    Naive timestamps are interpreted in the local timezone.
    """
    if not value:
        return None
    value = value.strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def to_epoch_ms(value: str) -> int | None:
    dt = parse_health_datetime(value)
    if dt is None:
        return None
    return int(round(dt.timestamp() * 1000))


class RecordExtractor:
    """Turn the export elements matching one metric into points or sessions."""

    def __init__(self, spec: MetricSpec):
        self.spec = spec

    def extract(
        self,
        source: str | IO[bytes],
        sink: Callable[[ExtractionResult], None] | None = None,
        progress: ProgressSink | None = None,
    ) -> ExtractionResult:
        """Read ``source`` once and return the aggregated result.

        When ``sink`` is given it is called exactly once, after the stream
        has ended and every bucket has been finalized.
        """
        progress = progress or NullProgress()
        aggregator = create_aggregator(self.spec)
        result = ExtractionResult(metric=self.spec.name)

        for element in iter_elements(source, tags=(self.spec.tag,)):
            if not self.spec.matches(element.tag, element.attributes):
                continue
            result.parsed += 1
            point = self.to_point(element)
            if point is None:
                result.dropped += 1
            else:
                aggregator.add(point)
            if result.parsed % PROGRESS_EVERY == 0:
                progress.on_progress(result.parsed, None)

        progress.on_progress(result.parsed, result.parsed)
        aggregator.finalize(result)

        if result.is_empty:
            logger.info(f"No {self.spec.name} records found in export")
        else:
            logger.info(
                f"Parsed {result.parsed} {self.spec.name} records "
                f"({result.dropped} dropped) -> {result.point_count} points, {len(result.sessions)} sessions"
            )

        if sink is not None:
            sink(result)
        return result

    def to_point(self, element: RawElement) -> MetricPoint | None:
        """Build a repaired point from one element, or None if it must be dropped."""
        attrs = element.attributes

        start_ms = to_epoch_ms(attrs.get("startDate", ""))
        if start_ms is None:
            logger.warning(f"Dropping {self.spec.name} record with bad startDate {attrs.get('startDate')!r}")
            return None

        if self.spec.aggregation == Aggregation.NONE:
            # point samples: the interval is synthesized by the repair below
            end_ms = start_ms
        else:
            end_ms = to_epoch_ms(attrs.get("endDate", ""))
            if end_ms is None:
                logger.warning(f"Dropping {self.spec.name} record with bad endDate {attrs.get('endDate')!r}")
                return None

        value = self._value(attrs)
        if value is None:
            return None

        return MetricPoint(
            start_ms=start_ms,
            end_ms=end_ms,
            data_type_name=self.spec.data_type_name,
            value=value,
            value_format=self.spec.value_format,
        ).repaired()

    def _value(self, attrs: dict[str, str]) -> float | int | None:
        raw = attrs.get(self.spec.value_attribute, "")

        if self.spec.value_map:
            return self.spec.value_map.get(raw, DEFAULT_SLEEP_STAGE)

        if self.spec.aggregation == Aggregation.WORKOUT_SESSIONS:
            # workouts without an energy total still become sessions
            number = _to_float(raw) or 0.0
            unit = attrs.get(f"{self.spec.value_attribute}Unit", "")
            return convert_unit(number, self.spec.unit_rule, unit)

        number = _to_float(raw)
        if number is None:
            logger.warning(f"Dropping {self.spec.name} record with bad value {raw!r}")
            return None

        converted = convert_unit(number, self.spec.unit_rule, attrs.get("unit", ""))
        if self.spec.value_format == ValueFormat.INTEGER:
            return int(converted)
        return converted


def _to_float(value: str) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
