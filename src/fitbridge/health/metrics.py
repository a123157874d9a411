"""
Metric configuration table.

One ``MetricSpec`` per syncable metric: which export elements feed it, how
their values are converted and grouped, and where they land in Google Fit.
The extractor, aggregator and uploaders are generic over this table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import Aggregation, ValueFormat
from .normalize import UnitRule

RECORD_TAG = "Record"
WORKOUT_TAG = "Workout"

SLEEP_ACTIVITY_TYPE = 72

# Google Fit sleep.segment stage values
SLEEP_STAGE_MAP = {
    "HKCategoryValueSleepAnalysisInBed": 3,
    "HKCategoryValueSleepAnalysisAsleep": 2,
    "HKCategoryValueSleepAnalysisAsleepUnspecified": 2,
    "HKCategoryValueSleepAnalysisAsleepCore": 4,
    "HKCategoryValueSleepAnalysisAsleepDeep": 5,
    "HKCategoryValueSleepAnalysisAsleepREM": 6,
    "HKCategoryValueSleepAnalysisAwake": 1,
}
DEFAULT_SLEEP_STAGE = 2

# Google Fit activity types for the workouts we know how to sync
WORKOUT_ACTIVITY_TYPES = {
    "HKWorkoutActivityTypeBadminton": 10,
    "HKWorkoutActivityTypeRunning": 8,
    "HKWorkoutActivityTypeWalking": 7,
    "HKWorkoutActivityTypeCycling": 1,
    "HKWorkoutActivityTypeYoga": 100,
}

_FIELD_FORMATS = {ValueFormat.FLOAT: "floatPoint", ValueFormat.INTEGER: "integer"}


@dataclass(frozen=True)
class MetricSpec:
    """Everything the pipeline needs to know about one metric."""

    name: str
    source_type: str
    data_type_name: str
    field_name: str
    tag: str = RECORD_TAG
    type_attribute: str = "type"
    value_attribute: str = "value"
    unit_rule: UnitRule = UnitRule.IDENTITY
    aggregation: Aggregation = Aggregation.NONE
    value_format: ValueFormat = ValueFormat.FLOAT
    chunk_size: int | None = None
    data_type: dict[str, Any] | None = None
    session_name: str = ""
    activity_type: int | None = None
    value_map: dict[str, int] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return f"apple_health_{self.name}_clean"

    @property
    def produces_sessions(self) -> bool:
        return self.aggregation.produces_sessions

    def data_type_schema(self) -> dict[str, Any]:
        """Schema sent when the data source has to be created."""
        if self.data_type is not None:
            return self.data_type
        return {
            "name": self.data_type_name,
            "field": [{"name": self.field_name, "format": _FIELD_FORMATS[self.value_format]}],
        }

    def matches(self, tag: str, attributes: dict[str, str]) -> bool:
        return tag == self.tag and attributes.get(self.type_attribute) == self.source_type


def _workout(name: str, source_type: str, session_name: str) -> MetricSpec:
    return MetricSpec(
        name=name,
        source_type=source_type,
        tag=WORKOUT_TAG,
        type_attribute="workoutActivityType",
        value_attribute="totalEnergyBurned",
        unit_rule=UnitRule.ENERGY_TO_KILOCALORIES,
        aggregation=Aggregation.WORKOUT_SESSIONS,
        data_type_name="com.google.calories.expended",
        field_name="calories",
        session_name=session_name,
        activity_type=WORKOUT_ACTIVITY_TYPES[source_type],
    )


BUILTIN_METRICS: dict[str, MetricSpec] = {
    spec.name: spec
    for spec in [
        MetricSpec(
            name="weight",
            source_type="HKQuantityTypeIdentifierBodyMass",
            data_type_name="com.google.weight",
            field_name="weight",
            unit_rule=UnitRule.MASS_TO_KILOGRAMS,
        ),
        MetricSpec(
            name="height",
            source_type="HKQuantityTypeIdentifierHeight",
            data_type_name="com.google.height",
            field_name="height",
            unit_rule=UnitRule.CENTIMETERS_TO_METERS,
        ),
        MetricSpec(
            name="bmi",
            source_type="HKQuantityTypeIdentifierBodyMassIndex",
            data_type_name="com.google.body.mass.index",
            field_name="value",
        ),
        MetricSpec(
            name="body_fat",
            source_type="HKQuantityTypeIdentifierBodyFatPercentage",
            data_type_name="com.google.body.fat.percentage",
            field_name="percentage",
            unit_rule=UnitRule.FRACTION_TO_PERCENT,
        ),
        MetricSpec(
            name="oxygen_saturation",
            source_type="HKQuantityTypeIdentifierOxygenSaturation",
            data_type_name="com.google.oxygen_saturation",
            field_name="oxygen_saturation",
            unit_rule=UnitRule.FRACTION_TO_PERCENT,
        ),
        MetricSpec(
            name="steps",
            source_type="HKQuantityTypeIdentifierStepCount",
            data_type_name="com.google.step_count.delta",
            field_name="steps",
            aggregation=Aggregation.DAILY,
            value_format=ValueFormat.INTEGER,
        ),
        MetricSpec(
            name="distance",
            source_type="HKQuantityTypeIdentifierDistanceWalkingRunning",
            data_type_name="com.google.distance.delta",
            field_name="distance",
            unit_rule=UnitRule.DISTANCE_TO_METERS,
            aggregation=Aggregation.DAILY,
        ),
        MetricSpec(
            name="calories",
            source_type="HKQuantityTypeIdentifierActiveEnergyBurned",
            data_type_name="com.google.calories.expended",
            field_name="calories",
            unit_rule=UnitRule.ENERGY_TO_KILOCALORIES,
            aggregation=Aggregation.MINUTE_SUM,
            chunk_size=1000,
        ),
        MetricSpec(
            name="sleep",
            source_type="HKCategoryTypeIdentifierSleepAnalysis",
            data_type_name="com.google.sleep.segment",
            field_name="sleep_segment_type",
            aggregation=Aggregation.SLEEP_SESSIONS,
            value_format=ValueFormat.INTEGER,
            session_name="Sleep",
            activity_type=SLEEP_ACTIVITY_TYPE,
            value_map=SLEEP_STAGE_MAP,
        ),
        _workout("badminton", "HKWorkoutActivityTypeBadminton", "Badminton Match"),
        _workout("running", "HKWorkoutActivityTypeRunning", "Run"),
        _workout("walking", "HKWorkoutActivityTypeWalking", "Walk"),
        _workout("cycling", "HKWorkoutActivityTypeCycling", "Ride"),
        _workout("yoga", "HKWorkoutActivityTypeYoga", "Yoga"),
    ]
}
