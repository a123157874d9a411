"""
Health export processing: models, normalization, extraction, aggregation.

The upload side lives in ``fitbridge.integrations.google_fit``; the
end-to-end run is ``fitbridge.health.pipeline.SyncPipeline``.
"""

from .aggregator import bucket_key, create_aggregator
from .extractor import RawElement, RecordExtractor, iter_elements, parse_health_datetime
from .metrics import BUILTIN_METRICS, MetricSpec
from .models import (
    Aggregation,
    DataSource,
    ExtractionResult,
    MetricPoint,
    Session,
    UploadReport,
    ValueFormat,
)
from .normalize import UnitRule, convert_unit, ms_to_ns, repair_interval
from .registry import MetricRegistry

__all__ = [
    "BUILTIN_METRICS",
    "Aggregation",
    "DataSource",
    "ExtractionResult",
    "MetricPoint",
    "MetricRegistry",
    "MetricSpec",
    "RawElement",
    "RecordExtractor",
    "Session",
    "UnitRule",
    "UploadReport",
    "ValueFormat",
    "bucket_key",
    "convert_unit",
    "create_aggregator",
    "iter_elements",
    "ms_to_ns",
    "parse_health_datetime",
    "repair_interval",
]
