"""Display strings for metric values.

Every metric renders as "<label>: <value>" text. Unavailable values render
as a single configurable placeholder, so the overlay never shows a mix of
"N/A", "?" and empty cells.
"""

from __future__ import annotations

from overlaymon.models.base import (
    DurationValue,
    Metric,
    MetricValue,
    NumericValue,
    RatioValue,
    Snapshot,
)

# Text shown for metrics that could not be obtained
DEFAULT_PLACEHOLDER = "--"

# Units written directly after the number ("45.5°C", "12.0%")
ATTACHED_UNITS = frozenset({"%", "°C"})


def format_number(value: float, unit: str = "", decimals: int = 1) -> str:
    """Format a number with its unit.

    Args:
        value: The number
        unit: Display unit ("" for unitless values)
        decimals: Digits after the decimal point

    Returns:
        Text such as "45.5°C", "3600.0 MHz" or "1.25"
    """
    text = f"{value:.{decimals}f}"
    if not unit:
        return text
    if unit in ATTACHED_UNITS:
        return f"{text}{unit}"
    return f"{text} {unit}"


def format_value(
    value: MetricValue | None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    decimals: int = 1,
) -> str:
    """Format a metric value for display.

    Args:
        value: The value (None is treated as unavailable)
        placeholder: Text for unavailable values
        decimals: Digits after the decimal point for numbers

    Returns:
        Display text
    """
    if isinstance(value, NumericValue):
        return format_number(value.value, value.unit, decimals)
    if isinstance(value, RatioValue):
        used = f"{value.used:.0f}"
        total = f"{value.total:.0f}"
        return f"{used}/{total} {value.unit}".rstrip()
    if isinstance(value, DurationValue):
        return value.formatted
    return placeholder


def format_metric(
    metric: Metric,
    value: MetricValue | None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    decimals: int = 1,
) -> str:
    """Format a metric as "<label>: <value>"."""
    return f"{metric.label}: {format_value(value, placeholder, decimals)}"


def snapshot_rows(
    snapshot: Snapshot,
    metrics: list[Metric] | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    decimals: int = 1,
) -> list[tuple[str, str]]:
    """Build (label, value text) rows for a snapshot.

    Args:
        snapshot: The snapshot to render
        metrics: Metrics to include, in order (every collected metric if None)
        placeholder: Text for unavailable values
        decimals: Digits after the decimal point for numbers

    Returns:
        One row per metric
    """
    selected = metrics if metrics is not None else list(snapshot)
    return [
        (metric.label, format_value(snapshot[metric], placeholder, decimals))
        for metric in selected
    ]
