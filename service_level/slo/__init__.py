"""SLO output engine."""

from service_level.slo.expiry import ExpiryEntry, ExpiryState, ExpiryTracker
from service_level.slo.labels import REQUIRED_LABELS, LabelKey
from service_level.slo.output import (
    LoggerOutput,
    MultiOutput,
    Output,
    PrometheusOutput,
    create_output,
)
from service_level.slo.registry import (
    ERROR_RATIO_METRIC,
    FULL_RATIO_METRIC,
    OBJECTIVE_RATIO_METRIC,
    SeriesTriple,
    SLOMetricsRegistry,
)

__all__ = [
    "ExpiryEntry",
    "ExpiryState",
    "ExpiryTracker",
    "REQUIRED_LABELS",
    "LabelKey",
    "LoggerOutput",
    "MultiOutput",
    "Output",
    "PrometheusOutput",
    "create_output",
    "ERROR_RATIO_METRIC",
    "FULL_RATIO_METRIC",
    "OBJECTIVE_RATIO_METRIC",
    "SeriesTriple",
    "SLOMetricsRegistry",
]
