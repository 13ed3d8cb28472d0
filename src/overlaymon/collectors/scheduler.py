"""Visibility-driven collection scheduler.

The overlay is either HIDDEN or VISIBLE. While visible, a single periodic
task collects one snapshot per interval, records it into the rolling
history and hands it to every listener. Hiding cancels that task and its
in-flight collection at once.

Key properties:
- show() is idempotent; at most one periodic task is active at any time
- No snapshot is delivered while hidden
- A tick started in one visible period is never delivered in a later one
- A failing listener is logged and does not affect other listeners
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from enum import Enum
import logging
from typing import Any

from overlaymon.collectors.collector import SnapshotCollector
from overlaymon.collectors.history import RollingHistory
from overlaymon.models.base import Snapshot
from overlaymon.sentry import add_breadcrumb

logger = logging.getLogger(__name__)

# Default polling interval in seconds
DEFAULT_INTERVAL = 1.0

# Type alias for snapshot listeners
SnapshotListener = Callable[[Snapshot], Coroutine[Any, Any, None]]


class Visibility(str, Enum):
    """Overlay visibility state."""

    HIDDEN = "hidden"
    VISIBLE = "visible"


class OverlayScheduler:
    """Drives periodic collection while the overlay is visible.

    Example:
        scheduler = OverlayScheduler(collector, interval=1.0, history=history)
        scheduler.add_listener(render)
        scheduler.show()
        # ... later ...
        scheduler.hide()
        await scheduler.close()
    """

    def __init__(
        self,
        collector: SnapshotCollector,
        interval: float = DEFAULT_INTERVAL,
        history: RollingHistory | None = None,
    ) -> None:
        """Initialize the scheduler in the HIDDEN state.

        Args:
            collector: Collector run once per tick
            interval: Seconds between tick starts (must be positive)
            history: Rolling history fed with every delivered snapshot

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.collector = collector
        self.interval = interval
        self.history = history

        self._state = Visibility.HIDDEN
        self._task: asyncio.Task[None] | None = None
        # Cancelled tasks that have not finished unwinding yet
        self._stopping: set[asyncio.Task[None]] = set()
        # Bumped on every transition; a tick only delivers for its own generation
        self._generation = 0
        self._listeners: list[SnapshotListener] = []

        self._ticks_delivered = 0
        self._last_snapshot: Snapshot | None = None

    @property
    def state(self) -> Visibility:
        """Get the current visibility state."""
        return self._state

    @property
    def visible(self) -> bool:
        """Check if the overlay is visible."""
        return self._state is Visibility.VISIBLE

    @property
    def generation(self) -> int:
        """Counter bumped on every show/hide; identifies the current visible period."""
        return self._generation

    @property
    def active_timers(self) -> int:
        """Number of live periodic tasks (0 or 1)."""
        return 1 if self._task is not None and not self._task.done() else 0

    @property
    def ticks_delivered(self) -> int:
        """Number of snapshots delivered since creation."""
        return self._ticks_delivered

    @property
    def last_snapshot(self) -> Snapshot | None:
        """Most recently delivered snapshot (None before the first tick)."""
        return self._last_snapshot

    def add_listener(self, listener: SnapshotListener) -> None:
        """Add a listener invoked with every delivered snapshot.

        Args:
            listener: Async function(snapshot) to call
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        """Remove a previously added listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def show(self) -> None:
        """Start periodic collection (first tick immediately).

        Does nothing if already visible. Must be called from a running
        event loop.
        """
        if self._state is Visibility.VISIBLE:
            return

        loop = asyncio.get_running_loop()
        self._state = Visibility.VISIBLE
        self._generation += 1
        self._task = loop.create_task(
            self._run(self._generation),
            name=f"overlay-ticker-{self._generation}",
        )
        logger.info("Overlay visible, collecting every %.2fs", self.interval)
        add_breadcrumb("Overlay shown", category="scheduler")

    def hide(self) -> None:
        """Stop periodic collection and cancel any in-flight tick.

        Does nothing if already hidden.
        """
        if self._state is Visibility.HIDDEN:
            return

        self._state = Visibility.HIDDEN
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            self._stopping.add(task)
            task.add_done_callback(self._stopping.discard)
        logger.info("Overlay hidden, collection stopped")
        add_breadcrumb("Overlay hidden", category="scheduler")

    def toggle(self) -> Visibility:
        """Flip visibility.

        Returns:
            The new state
        """
        if self.visible:
            self.hide()
        else:
            self.show()
        return self._state

    async def close(self) -> None:
        """Hide and wait for cancelled tasks to finish."""
        self.hide()
        if self._stopping:
            await asyncio.gather(*self._stopping, return_exceptions=True)
        self._stopping.clear()

    async def _run(self, generation: int) -> None:
        """Tick loop for one visible period.

        Args:
            generation: Generation this loop belongs to
        """
        loop = asyncio.get_running_loop()

        while generation == self._generation:
            started = loop.time()
            try:
                snapshot = await self.collector.collect()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Collection failed")
                snapshot = None

            if generation != self._generation:
                return
            if snapshot is not None:
                await self._deliver(snapshot, generation)

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    async def _deliver(self, snapshot: Snapshot, generation: int) -> None:
        """Record a snapshot into history and hand it to every listener."""
        if self.history is not None:
            self.history.record(snapshot)
        self._last_snapshot = snapshot
        self._ticks_delivered += 1

        for listener in list(self._listeners):
            if generation != self._generation:
                return
            try:
                await listener(snapshot)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)
