"""Application context for overlaymon.

OverlayContext owns everything the overlay needs at runtime: the validated
config, the probe chains, the collector, the rolling history and the
scheduler. It is created once at startup and passed explicitly to the
presentation layer; nothing here is global.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from types import TracebackType

from overlaymon.collectors.collector import SnapshotCollector
from overlaymon.collectors.history import RollingHistory
from overlaymon.collectors.scheduler import OverlayScheduler
from overlaymon.config.loader import Config
from overlaymon.models.base import CHART_METRICS, Metric
from overlaymon.probes.base import Probe
from overlaymon.probes.builtin import build_default_chains
from overlaymon.probes.chain import ProbeChain
from overlaymon.probes.registry import build_chains

logger = logging.getLogger(__name__)


class OverlayContext:
    """Owner of the collection pipeline for one overlay session.

    Example:
        async with OverlayContext(load_config()) as context:
            context.scheduler.add_listener(render)
            context.start()

    Attributes:
        config: Validated configuration
        chains: Probe chains for the enabled metrics
        collector: Snapshot collector (deadline = polling interval)
        history: Rolling history for the enabled chart metrics
        scheduler: Visibility-driven scheduler
    """

    def __init__(
        self,
        config: Config | None = None,
        chain_table: Mapping[Metric, Sequence[Probe]] | None = None,
    ) -> None:
        """Build the pipeline from configuration.

        Args:
            config: Validated configuration (defaults if None)
            chain_table: Probes per metric (built-in chains if None)

        Raises:
            ConfigurationError: If an enabled metric has no valid chain
        """
        self.config = config or Config()
        probe_timeout = self.config.effective_probe_timeout

        if chain_table is None:
            chain_table = build_default_chains(
                disk_path=self.config.collection.disk_path,
                timeout=probe_timeout,
            )

        self.chains: dict[Metric, ProbeChain] = build_chains(chain_table, self.config.metrics)
        self.collector = SnapshotCollector(
            self.chains,
            deadline=self.config.interval,
            probe_timeout=probe_timeout,
        )
        self.history = RollingHistory(
            metrics=[m for m in CHART_METRICS if m in self.chains],
            capacity=self.config.history_capacity,
        )
        self.scheduler = OverlayScheduler(
            self.collector,
            interval=self.config.interval,
            history=self.history,
        )
        logger.debug(
            "Context ready: %d metrics, interval %.2fs, probe timeout %.2fs",
            len(self.chains),
            self.config.interval,
            probe_timeout,
        )

    @property
    def metrics(self) -> list[Metric]:
        """Enabled metrics in display order."""
        return list(self.chains)

    def start(self) -> None:
        """Show the overlay if configured to start visible."""
        if self.config.overlay.auto_show:
            self.scheduler.show()

    async def close(self) -> None:
        """Stop collection and wait for in-flight work to unwind."""
        await self.scheduler.close()

    async def __aenter__(self) -> OverlayContext:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
