"""Overlay TUI application for overlaymon.

This module provides:
- OverlayApp: Textual app that plays the role of the overlay window
- A stats panel with one line per enabled metric
- Sparklines for chart metrics, drawn from the rolling history
- A toggle key that shows/hides the overlay and drives the scheduler
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, Label

from overlaymon import __version__
from overlaymon.tui.messages import SnapshotReady, VisibilityChanged
from overlaymon.tui.widgets.sparkline import Sparkline
from overlaymon.tui.widgets.stats_panel import StatsPanel

if TYPE_CHECKING:
    from overlaymon.context import OverlayContext
    from overlaymon.models.base import Snapshot

logger = logging.getLogger(__name__)


class OverlayApp(App[None]):
    """Terminal overlay showing live stats.

    The overlay starts visible when `overlay.auto_show` is set. Pressing
    the toggle key (default "g") hides it, which stops collection; pressing
    it again resumes with a fresh first tick.

    Attributes:
        context: The application context owning the collection pipeline
    """

    TITLE = "overlaymon"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        layout: vertical;
    }

    #overlay {
        border: round $primary;
        padding: 0 1;
        height: auto;
    }

    #charts {
        height: auto;
        margin-top: 1;
    }

    #hidden-hint {
        color: $text-muted;
        padding: 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", priority=True),
    ]

    def __init__(self, context: OverlayContext) -> None:
        """Initialize the app.

        Args:
            context: Application context (not yet started)
        """
        super().__init__()
        self.context = context
        overlay = context.config.overlay
        self.toggle_key = overlay.toggle_key
        self._placeholder = overlay.placeholder
        self._decimals = overlay.decimal_places
        self.bind(self.toggle_key, "toggle_overlay", description="Show/Hide")

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="overlay"):
            yield StatsPanel(
                self.context.metrics,
                placeholder=self._placeholder,
                decimals=self._decimals,
                id="stats",
            )
            with Vertical(id="charts"):
                for metric in self.context.history.metrics:
                    yield Sparkline(
                        label=f"{metric.label:<10}",
                        width=self.context.history.capacity,
                        id=f"spark-{metric.value}",
                    )
        yield Label(f"Overlay hidden (press {self.toggle_key} to show)", id="hidden-hint")
        yield Footer()

    async def on_mount(self) -> None:
        """Subscribe to snapshots and start the scheduler."""
        self.context.scheduler.add_listener(self._on_snapshot)
        self.context.start()
        self._apply_visibility(self.context.scheduler.visible)

    async def on_unmount(self) -> None:
        """Stop collection before the app exits."""
        self.context.scheduler.remove_listener(self._on_snapshot)
        await self.context.close()

    async def _on_snapshot(self, snapshot: Snapshot) -> None:
        """Scheduler listener: hand the snapshot to the message queue."""
        self.post_message(SnapshotReady(snapshot, self.context.scheduler.generation))

    def on_snapshot_ready(self, message: SnapshotReady) -> None:
        """Redraw the panel and charts."""
        scheduler = self.context.scheduler
        if not scheduler.visible or message.generation != scheduler.generation:
            logger.debug("Dropping snapshot from generation %d", message.generation)
            return
        self.query_one("#stats", StatsPanel).show_snapshot(message.snapshot)
        for metric in self.context.history.metrics:
            spark = self.query_one(f"#spark-{metric.value}", Sparkline)
            spark.set_values(self.context.history.values(metric))

    def on_visibility_changed(self, message: VisibilityChanged) -> None:
        self._apply_visibility(message.visible)

    def action_toggle_overlay(self) -> None:
        """Show or hide the overlay."""
        state = self.context.scheduler.toggle()
        logger.debug("Overlay toggled: %s", state.value)
        self.post_message(VisibilityChanged(self.context.scheduler.visible))

    def _apply_visibility(self, visible: bool) -> None:
        self.query_one("#overlay").display = visible
        self.query_one("#hidden-hint").display = not visible


def run_app(context: OverlayContext) -> None:
    """Create and run the overlay TUI.

    Args:
        context: Application context built from configuration
    """
    app = OverlayApp(context)
    app.run()
