"""Interval repair and unit conversion.

Pure functions, no I/O.  Google Fit rejects zero-length intervals, so any
point whose end does not come after its start is stretched to a minimum
duration.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

MIN_INTERVAL_MS = 60_000
NANOS_PER_MILLI = 1_000_000

# Percentages are rounded so 0.97 * 100 comes out as 97.0, not 97.00000000000001.
_PERCENT_DIGITS = 6


class UnitRule(StrEnum):
    """Per-metric conversion from the export's unit to Google Fit's."""

    IDENTITY = "identity"
    FRACTION_TO_PERCENT = "fraction_to_percent"
    PERCENT_TO_FRACTION = "percent_to_fraction"
    CENTIMETERS_TO_METERS = "centimeters_to_meters"
    METERS_TO_CENTIMETERS = "meters_to_centimeters"
    MASS_TO_KILOGRAMS = "mass_to_kilograms"
    DISTANCE_TO_METERS = "distance_to_meters"
    ENERGY_TO_KILOCALORIES = "energy_to_kilocalories"

    @property
    def inverse(self) -> UnitRule:
        """Inverse of a fixed scalar rule. Unit-aware rules have none."""
        try:
            return _INVERSES[self]
        except KeyError:
            raise ValueError(f"Unit rule {self.value!r} has no inverse") from None


_INVERSES = {
    UnitRule.IDENTITY: UnitRule.IDENTITY,
    UnitRule.FRACTION_TO_PERCENT: UnitRule.PERCENT_TO_FRACTION,
    UnitRule.PERCENT_TO_FRACTION: UnitRule.FRACTION_TO_PERCENT,
    UnitRule.CENTIMETERS_TO_METERS: UnitRule.METERS_TO_CENTIMETERS,
    UnitRule.METERS_TO_CENTIMETERS: UnitRule.CENTIMETERS_TO_METERS,
}


def repair_interval(start_ms: int, end_ms: int, min_duration_ms: int = MIN_INTERVAL_MS) -> tuple[int, int]:
    """Return ``(start, end)`` with ``end = start + min_duration_ms`` when ``end <= start``."""
    if end_ms <= start_ms:
        return start_ms, start_ms + min_duration_ms
    return start_ms, end_ms


def ms_to_ns(ms: int) -> str:
    """Milliseconds since epoch as a decimal nanosecond string."""
    return str(int(ms) * NANOS_PER_MILLI)


def convert_unit(value: float, rule: UnitRule, unit: str = "") -> float:
    """Convert ``value`` from the export's unit using ``rule``.

    ``unit`` is the record's own ``unit`` attribute. Only the mass, distance
    and energy rules consult it; unknown units pass through unchanged.
    """
    u = (unit or "").strip().lower()

    if rule == UnitRule.IDENTITY:
        return value
    if rule == UnitRule.FRACTION_TO_PERCENT:
        return round(value * 100.0, _PERCENT_DIGITS)
    if rule == UnitRule.PERCENT_TO_FRACTION:
        return value / 100.0
    if rule == UnitRule.CENTIMETERS_TO_METERS:
        if u == "m":
            return value
        return value / 100.0
    if rule == UnitRule.METERS_TO_CENTIMETERS:
        return value * 100.0
    if rule == UnitRule.MASS_TO_KILOGRAMS:
        return _to_kg(value, u)
    if rule == UnitRule.DISTANCE_TO_METERS:
        return _to_meters(value, u)
    if rule == UnitRule.ENERGY_TO_KILOCALORIES:
        return _to_kcal(value, u)
    raise ValueError(f"Unknown unit rule: {rule!r}")


def _to_kg(value: float, unit: str) -> float:
    if unit in {"lb", "lbs", "pound", "pounds"}:
        return value * 0.45359237
    if unit in {"g", "gram", "grams"}:
        return value / 1000.0
    return value


def _to_meters(value: float, unit: str) -> float:
    if unit == "km":
        return value * 1000.0
    if unit in {"mi", "mile", "miles"}:
        return value * 1609.344
    if unit in {"ft", "foot", "feet"}:
        return value * 0.3048
    return value


def _to_kcal(value: float, unit: str) -> float:
    if unit in {"cal", "smallcalorie"}:
        return value / 1000.0
    if unit == "kj":
        return value / 4.184
    return value


def ms_to_rfc3339(ms: int) -> str:
    """Milliseconds since epoch as an RFC 3339 UTC timestamp (``...Z``)."""
    dt = datetime.fromtimestamp(ms / 1000, tz=UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
