"""Data models for overlaymon.

This module provides the fixed schema used throughout overlaymon:
- Metric: Closed enumeration of overlay metrics with declared shape and unit
- NumericValue, RatioValue, DurationValue, Unavailable: Tagged metric values
- Snapshot: Immutable per-tick mapping of metric to value
"""

from overlaymon.models.base import (
    CHART_METRICS,
    METRIC_SPECS,
    UNAVAILABLE,
    DurationValue,
    Metric,
    MetricSpec,
    MetricValue,
    NumericValue,
    RatioValue,
    RawValue,
    Snapshot,
    Unavailable,
    ValueShape,
    format_duration,
    make_value,
    value_shape,
)

__all__ = [
    # Metric declarations
    "Metric",
    "MetricSpec",
    "METRIC_SPECS",
    "CHART_METRICS",
    "ValueShape",
    # Values
    "MetricValue",
    "NumericValue",
    "RatioValue",
    "DurationValue",
    "Unavailable",
    "UNAVAILABLE",
    "RawValue",
    "make_value",
    "value_shape",
    "format_duration",
    # Snapshot
    "Snapshot",
]
