"""Rolling history of chart metrics.

Keeps the last N available numeric samples for each chart metric in a
fixed-size deque. Unavailable values are skipped, so a chart shows the
last N samples that carried data rather than the last N ticks.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from overlaymon.models.base import (
    CHART_METRICS,
    DurationValue,
    Metric,
    MetricValue,
    NumericValue,
    RatioValue,
    Snapshot,
)

# Default number of samples kept per metric
DEFAULT_HISTORY_CAPACITY = 30


@dataclass
class HistoryStats:
    """Statistics about history usage.

    Attributes:
        capacity: Maximum samples kept per metric
        tracked: Number of tracked metrics
        total_added: Samples ever appended
        total_evicted: Samples dropped because a buffer was full
        total_skipped: Unavailable values that were not appended
    """

    capacity: int = 0
    tracked: int = 0
    total_added: int = 0
    total_evicted: int = 0
    total_skipped: int = 0


def sample_of(value: MetricValue | None) -> float | None:
    """Get the chartable number carried by a metric value.

    Ratios chart their percentage and durations their seconds.

    Returns:
        The sample, or None if the value carries no chartable number
    """
    if isinstance(value, NumericValue):
        return value.value
    if isinstance(value, RatioValue):
        return value.percent
    if isinstance(value, DurationValue):
        return value.seconds
    return None


class RollingHistory:
    """Fixed-capacity sample buffers for chart metrics.

    Example:
        history = RollingHistory(capacity=30)
        history.record(snapshot)
        cpu = history.values(Metric.CPU_USAGE)
    """

    def __init__(
        self,
        metrics: Iterable[Metric] = CHART_METRICS,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
    ) -> None:
        """Initialize the history.

        Args:
            metrics: Metrics to track
            capacity: Maximum samples kept per metric (must be positive)

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self._capacity = capacity
        self._buffers: dict[Metric, deque[float]] = {
            Metric(m): deque(maxlen=capacity) for m in metrics
        }

        self._total_added = 0
        self._total_evicted = 0
        self._total_skipped = 0

    @property
    def capacity(self) -> int:
        """Get the per-metric capacity."""
        return self._capacity

    @property
    def metrics(self) -> list[Metric]:
        """Get the tracked metrics."""
        return list(self._buffers)

    def __contains__(self, metric: object) -> bool:
        return metric in self._buffers

    def push(self, metric: Metric, value: MetricValue | None) -> bool:
        """Append a sample, evicting the oldest when full.

        Args:
            metric: A tracked metric
            value: The metric's value this tick

        Returns:
            True if a sample was appended, False if the value was unavailable

        Raises:
            KeyError: If the metric is not tracked
        """
        buffer = self._buffers[metric]
        sample = sample_of(value)
        if sample is None:
            self._total_skipped += 1
            return False

        if len(buffer) >= self._capacity:
            self._total_evicted += 1
        buffer.append(sample)
        self._total_added += 1
        return True

    def record(self, snapshot: Snapshot) -> None:
        """Push every tracked metric's value from a snapshot."""
        for metric in self._buffers:
            self.push(metric, snapshot[metric])

    def values(self, metric: Metric) -> list[float]:
        """Get a metric's samples, oldest first.

        Raises:
            KeyError: If the metric is not tracked
        """
        return list(self._buffers[metric])

    def latest(self, metric: Metric) -> float | None:
        """Get a metric's most recent sample (None if empty)."""
        buffer = self._buffers[metric]
        return buffer[-1] if buffer else None

    def clear(self, metric: Metric | None = None) -> None:
        """Drop samples for one metric, or for every metric if None."""
        if metric is not None:
            self._buffers[metric].clear()
            return
        for buffer in self._buffers.values():
            buffer.clear()

    def stats(self) -> HistoryStats:
        """Get history statistics."""
        return HistoryStats(
            capacity=self._capacity,
            tracked=len(self._buffers),
            total_added=self._total_added,
            total_evicted=self._total_evicted,
            total_skipped=self._total_skipped,
        )
