"""Snapshot collector.

Resolves every registered probe chain concurrently, one asyncio task per
chain, and assembles the results into a Snapshot. Chains still running when
the tick deadline passes are cancelled and reported as unavailable, so a
slow tool never stalls the other metrics.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
import logging
import time
from typing import Any

from overlaymon.errors import DeadlineExceeded
from overlaymon.models.base import UNAVAILABLE, Metric, MetricValue, Snapshot
from overlaymon.probes.chain import ProbeChain

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


# Default tick deadline in seconds (one polling interval)
DEFAULT_DEADLINE = 1.0


class SnapshotCollector:
    """Collects one Snapshot per call from a fixed set of probe chains.

    Example:
        collector = SnapshotCollector(chains, deadline=1.0)
        snapshot = await collector.collect()
        print(snapshot[Metric.CPU_TEMP])

    Attributes:
        chains: Probe chains keyed by metric
        deadline: Seconds a collection may take before pending chains are cancelled
        probe_timeout: Per-probe timeout passed to chains (probe default if None)
    """

    def __init__(
        self,
        chains: Mapping[Metric, ProbeChain],
        deadline: float = DEFAULT_DEADLINE,
        probe_timeout: float | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            chains: Probe chains keyed by metric
            deadline: Tick deadline in seconds (must be positive)
            probe_timeout: Per-probe timeout in seconds

        Raises:
            ValueError: If deadline or probe_timeout is not positive
        """
        if deadline <= 0:
            raise ValueError("deadline must be positive")
        if probe_timeout is not None and probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive if specified")

        self.chains: dict[Metric, ProbeChain] = dict(chains)
        self.deadline = deadline
        self.probe_timeout = probe_timeout

        # Statistics
        self._total_ticks = 0
        self._deadline_misses: dict[Metric, int] = {}
        self._last_duration: float | None = None

    @property
    def metrics(self) -> list[Metric]:
        """Metrics this collector resolves, in registration order."""
        return list(self.chains)

    @property
    def stats(self) -> dict[str, Any]:
        """Get collection statistics."""
        return {
            "total_ticks": self._total_ticks,
            "deadline_misses": {m.value: n for m, n in self._deadline_misses.items()},
            "last_duration": self._last_duration,
        }

    async def collect(self) -> Snapshot:
        """Resolve every chain within the deadline.

        Returns:
            Snapshot with one entry per registered chain; chains that failed
            or missed the deadline are UNAVAILABLE
        """
        timestamp = _utcnow()
        started = time.monotonic()

        tasks: dict[Metric, asyncio.Task[MetricValue]] = {
            metric: asyncio.create_task(
                chain.resolve(self.probe_timeout),
                name=f"chain-{metric.value}",
            )
            for metric, chain in self.chains.items()
        }

        try:
            if tasks:
                await asyncio.wait(tasks.values(), timeout=self.deadline)
        finally:
            # Pending chains missed the deadline (or collect itself was cancelled)
            pending = [task for task in tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        values: dict[Metric, MetricValue] = {}
        for metric, task in tasks.items():
            values[metric] = self._task_value(metric, task)

        self._total_ticks += 1
        self._last_duration = time.monotonic() - started
        return Snapshot(values=values, timestamp=timestamp)

    def _task_value(self, metric: Metric, task: asyncio.Task[MetricValue]) -> MetricValue:
        """Extract a chain's value from its finished task."""
        if task.cancelled():
            self._deadline_misses[metric] = self._deadline_misses.get(metric, 0) + 1
            logger.debug("%s", DeadlineExceeded(metric, self.deadline))
            return UNAVAILABLE

        error = task.exception()
        if error is not None:
            logger.debug("Chain for '%s' failed: %s", metric.value, error)
            return UNAVAILABLE
        return task.result()
