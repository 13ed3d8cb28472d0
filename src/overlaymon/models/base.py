"""Core data models for overlaymon.

This module defines the fixed schema shared by probes, the collector and
the presentation layer:
- Metric: Closed enumeration of every metric the overlay can show
- ValueShape: How a metric's value is structured (numeric, ratio, duration)
- NumericValue, RatioValue, DurationValue, Unavailable: Tagged metric values
- Snapshot: Immutable mapping of metrics to values for one collection tick
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
import math
from types import MappingProxyType
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from overlaymon.errors import ConfigurationError


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class ValueShape(str, Enum):
    """Structure of a metric's value.

    Attributes:
        NUMERIC: A single number with a unit (temperature, percentage, MHz)
        RATIO: A used/total pair with a unit (GPU memory)
        DURATION: Elapsed seconds, displayed as days/hours/minutes/seconds
    """

    NUMERIC = "numeric"
    RATIO = "ratio"
    DURATION = "duration"


@dataclass(frozen=True)
class MetricSpec:
    """Declared properties of a metric.

    Attributes:
        shape: Structure of the metric's value
        unit: Display unit (empty for unitless values)
        label: Human-readable label for display
        chartable: Whether the metric keeps a rolling history for charts
    """

    shape: ValueShape
    unit: str
    label: str
    chartable: bool = False


class Metric(str, Enum):
    """Every metric the overlay can display."""

    CPU_TEMP = "cpu_temp"
    CPU_USAGE = "cpu_usage"
    CPU_FREQ = "cpu_freq"
    CPU_FAN = "cpu_fan"
    GPU_TEMP = "gpu_temp"
    GPU_USAGE = "gpu_usage"
    GPU_FAN = "gpu_fan"
    GPU_MEM = "gpu_mem"
    GPU_POWER = "gpu_power"
    RAM_USAGE = "ram_usage"
    DISK_USAGE = "disk_usage"
    BATTERY = "battery"
    UPTIME = "uptime"
    NET_DOWN = "net_down"
    NET_UP = "net_up"
    LOAD_AVG = "load_avg"

    @property
    def spec(self) -> MetricSpec:
        """Get the declared properties of this metric."""
        return METRIC_SPECS[self]

    @property
    def shape(self) -> ValueShape:
        """Get the value shape of this metric."""
        return METRIC_SPECS[self].shape

    @property
    def unit(self) -> str:
        """Get the display unit of this metric."""
        return METRIC_SPECS[self].unit

    @property
    def label(self) -> str:
        """Get the human-readable label of this metric."""
        return METRIC_SPECS[self].label

    @property
    def chartable(self) -> bool:
        """Check if this metric feeds a history chart."""
        return METRIC_SPECS[self].chartable


METRIC_SPECS: dict[Metric, MetricSpec] = {
    Metric.CPU_TEMP: MetricSpec(ValueShape.NUMERIC, "°C", "CPU Temp"),
    Metric.CPU_USAGE: MetricSpec(ValueShape.NUMERIC, "%", "CPU Usage", chartable=True),
    Metric.CPU_FREQ: MetricSpec(ValueShape.NUMERIC, "MHz", "CPU Freq"),
    Metric.CPU_FAN: MetricSpec(ValueShape.NUMERIC, "RPM", "CPU Fan"),
    Metric.GPU_TEMP: MetricSpec(ValueShape.NUMERIC, "°C", "GPU Temp"),
    Metric.GPU_USAGE: MetricSpec(ValueShape.NUMERIC, "%", "GPU Usage", chartable=True),
    Metric.GPU_FAN: MetricSpec(ValueShape.NUMERIC, "%", "GPU Fan"),
    Metric.GPU_MEM: MetricSpec(ValueShape.RATIO, "MiB", "GPU Memory"),
    Metric.GPU_POWER: MetricSpec(ValueShape.NUMERIC, "W", "GPU Power"),
    Metric.RAM_USAGE: MetricSpec(ValueShape.NUMERIC, "%", "RAM Usage"),
    Metric.DISK_USAGE: MetricSpec(ValueShape.NUMERIC, "%", "Disk Usage"),
    Metric.BATTERY: MetricSpec(ValueShape.NUMERIC, "%", "Battery"),
    Metric.UPTIME: MetricSpec(ValueShape.DURATION, "", "Uptime"),
    Metric.NET_DOWN: MetricSpec(ValueShape.NUMERIC, "KB/s", "Net Down"),
    Metric.NET_UP: MetricSpec(ValueShape.NUMERIC, "KB/s", "Net Up"),
    Metric.LOAD_AVG: MetricSpec(ValueShape.NUMERIC, "", "Load Avg"),
}

# Metrics that keep a rolling history for charting
CHART_METRICS: tuple[Metric, ...] = tuple(m for m in Metric if METRIC_SPECS[m].chartable)


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as "Nd Nh Nm Ns".

    Args:
        seconds: Elapsed time in seconds (negative values clamp to zero)

    Returns:
        Formatted duration like "2d 3h 15m 42s"
    """
    total = max(0, int(seconds))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


class _MetricValueBase(BaseModel):
    """Common configuration for tagged metric values."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def available(self) -> bool:
        """Check if this value carries data."""
        return True


class NumericValue(_MetricValueBase):
    """A single number with a unit."""

    kind: Literal["numeric"] = "numeric"
    value: float
    unit: str = ""

    @field_validator("value")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinities."""
        if not math.isfinite(v):
            raise ValueError("Value must be finite")
        return v


class RatioValue(_MetricValueBase):
    """A used/total pair sharing one unit."""

    kind: Literal["ratio"] = "ratio"
    used: float = Field(..., ge=0.0)
    total: float = Field(..., ge=0.0)
    unit: str = ""

    @property
    def percent(self) -> float | None:
        """Used share of total as a percentage, or None when total is zero."""
        if self.total <= 0:
            return None
        return self.used / self.total * 100.0


class DurationValue(_MetricValueBase):
    """Elapsed time in seconds."""

    kind: Literal["duration"] = "duration"
    seconds: float = Field(..., ge=0.0)

    @property
    def formatted(self) -> str:
        """Duration formatted as days/hours/minutes/seconds."""
        return format_duration(self.seconds)


class Unavailable(_MetricValueBase):
    """Marker for a metric that could not be obtained."""

    kind: Literal["unavailable"] = "unavailable"

    @property
    def available(self) -> bool:
        """Unavailable values never carry data."""
        return False


UNAVAILABLE = Unavailable()

MetricValue = Annotated[
    NumericValue | RatioValue | DurationValue | Unavailable,
    Field(discriminator="kind"),
]
"""Tagged union of every value a metric can hold."""

_SHAPE_BY_KIND: dict[str, ValueShape] = {
    "numeric": ValueShape.NUMERIC,
    "ratio": ValueShape.RATIO,
    "duration": ValueShape.DURATION,
}

RawValue = float | int | tuple[float, float] | None
"""Untyped probe output before it is shaped for its metric."""


def value_shape(value: Any) -> ValueShape | None:
    """Get the shape of a metric value (None for unavailable)."""
    return _SHAPE_BY_KIND.get(getattr(value, "kind", ""))


def make_value(metric: Metric, raw: RawValue) -> MetricValue:
    """Shape a raw probe output into the metric's declared value type.

    Args:
        metric: The metric the value belongs to
        raw: A number for numeric/duration metrics, a (used, total) pair
            for ratio metrics, or None when no value was obtained

    Returns:
        The typed metric value, or UNAVAILABLE for None

    Raises:
        ValueError: If raw does not fit the metric's shape
    """
    if raw is None:
        return UNAVAILABLE

    shape = metric.shape
    if shape is ValueShape.RATIO:
        if not isinstance(raw, tuple) or len(raw) != 2:
            raise ValueError(f"Metric '{metric.value}' expects a (used, total) pair")
        used, total = raw
        return RatioValue(used=float(used), total=float(total), unit=metric.unit)

    if isinstance(raw, tuple):
        raise ValueError(f"Metric '{metric.value}' expects a single number")
    if shape is ValueShape.DURATION:
        return DurationValue(seconds=float(raw))
    return NumericValue(value=float(raw), unit=metric.unit)


@dataclass(frozen=True)
class Snapshot:
    """Immutable set of metric values collected in one tick.

    Metrics missing from the snapshot read as UNAVAILABLE. Every available
    value is checked against its metric's declared shape on construction.

    Attributes:
        values: Read-only mapping of metric to value
        timestamp: When the collection tick started (UTC)
    """

    values: Mapping[Metric, MetricValue]
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate value shapes and freeze the mapping."""
        checked: dict[Metric, MetricValue] = {}
        for key, value in self.values.items():
            try:
                metric = Metric(key)
            except ValueError as e:
                raise ConfigurationError(f"Unknown metric '{key}' in snapshot") from e
            if value.available and value_shape(value) is not metric.shape:
                raise ConfigurationError(
                    f"Metric '{metric.value}' expects a {metric.shape.value} value, "
                    f"got {value.kind}"
                )
            checked[metric] = value
        object.__setattr__(self, "values", MappingProxyType(checked))

    def __getitem__(self, metric: Metric) -> MetricValue:
        return self.values.get(metric, UNAVAILABLE)

    def __contains__(self, metric: object) -> bool:
        return metric in self.values

    def __iter__(self) -> Iterator[Metric]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def get(self, metric: Metric) -> MetricValue:
        """Get a metric's value, UNAVAILABLE if it was not collected."""
        return self[metric]

    @property
    def available_metrics(self) -> list[Metric]:
        """Metrics that resolved to a value this tick."""
        return [m for m, v in self.values.items() if v.available]

    def to_dict(self) -> dict[str, Any]:
        """Render the snapshot as a JSON-ready dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "metrics": {
                metric.value: value.model_dump(mode="json")
                for metric, value in self.values.items()
            },
        }
