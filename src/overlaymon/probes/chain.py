"""Ordered first-success fallback over the probes of one metric."""

from __future__ import annotations

from collections.abc import Sequence
import logging

from overlaymon.errors import ConfigurationError
from overlaymon.models.base import UNAVAILABLE, Metric, MetricValue
from overlaymon.probes.base import Probe

logger = logging.getLogger(__name__)


class ProbeChain:
    """Probes for one metric, tried in priority order.

    The first probe that produces a value wins and later probes are not
    invoked, and their carried state (rate baselines) is reset: a fallback
    that takes over starts from a fresh sample. An exhausted chain resolves
    to UNAVAILABLE. resolve() never raises (cancellation aside).

    Attributes:
        metric: The metric every probe in the chain produces
        probes: Probes in priority order, most authoritative first
        last_source: Name of the probe behind the last result (None if unavailable)
    """

    def __init__(self, metric: Metric, probes: Sequence[Probe]) -> None:
        """Initialize the chain.

        Args:
            metric: Metric the chain resolves
            probes: Probes in priority order

        Raises:
            ConfigurationError: If a probe targets a different metric
        """
        self.metric = Metric(metric)
        for probe in probes:
            if probe.metric is not self.metric:
                raise ConfigurationError(
                    f"Probe '{probe.name}' produces '{probe.metric.value}', "
                    f"not '{self.metric.value}'"
                )
        self.probes: tuple[Probe, ...] = tuple(probes)
        self.last_source: str | None = None

    def __len__(self) -> int:
        return len(self.probes)

    def __repr__(self) -> str:
        names = ", ".join(p.name for p in self.probes)
        return f"<ProbeChain {self.metric.value}: [{names}]>"

    async def resolve(self, timeout: float | None = None) -> MetricValue:
        """Try each probe in order until one produces a value.

        Args:
            timeout: Per-probe timeout in seconds (probe default if None)

        Returns:
            The first available value, or UNAVAILABLE if every probe failed
        """
        for index, probe in enumerate(self.probes):
            try:
                value = await probe.attempt(timeout)
            except Exception:
                # attempt() should never raise; a misbehaving subclass counts as a miss
                logger.debug("Probe '%s' raised past its boundary", probe.name, exc_info=True)
                continue

            if value.available:
                self.last_source = probe.name
                for skipped in self.probes[index + 1 :]:
                    skipped.reset()
                return value

        self.last_source = None
        return UNAVAILABLE
