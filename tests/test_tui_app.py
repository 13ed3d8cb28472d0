"""Tests for the overlaymon TUI application.

This module tests:
- OverlayApp instantiation and composition
- Snapshot rendering into the stats panel and sparklines
- The toggle key driving the scheduler
- Quit binding
"""

import pytest

from overlaymon import __version__
from overlaymon.config import Config
from overlaymon.context import OverlayContext
from overlaymon.models import Metric, NumericValue, Snapshot
from overlaymon.probes.base import CallableProbe, UnavailableProbe
from overlaymon.tui import OverlayApp
from overlaymon.tui.messages import SnapshotReady
from overlaymon.tui.widgets import Sparkline, StatsPanel


def make_context(**overrides) -> OverlayContext:
    """Context over fake probes: CPU temp/usage answer, GPU temp does not."""
    config = Config(
        interval=0.1,
        metrics=["cpu_temp", "cpu_usage", "gpu_temp"],
        **overrides,
    )
    table = {
        Metric.CPU_TEMP: [CallableProbe(Metric.CPU_TEMP, lambda: 50.0)],
        Metric.CPU_USAGE: [CallableProbe(Metric.CPU_USAGE, lambda: 25.0)],
        Metric.GPU_TEMP: [UnavailableProbe(Metric.GPU_TEMP)],
    }
    return OverlayContext(config, chain_table=table)


async def wait_for_snapshot(pilot, context: OverlayContext) -> None:
    """Let the scheduler deliver a tick and the app handle it."""
    for _ in range(40):
        if context.scheduler.ticks_delivered:
            break
        await pilot.pause(0.05)
    await pilot.pause()


class TestOverlayAppInstantiation:
    """Tests for OverlayApp instantiation."""

    def test_title(self) -> None:
        app = OverlayApp(make_context())
        assert app.TITLE == "overlaymon"
        assert __version__ in app.SUB_TITLE

    def test_toggle_key_from_config(self) -> None:
        app = OverlayApp(make_context(overlay={"toggle_key": "o"}))
        assert app.toggle_key == "o"


class TestOverlayAppLifecycle:
    """Tests for OverlayApp using Textual's pilot."""

    @pytest.mark.asyncio
    async def test_composition(self) -> None:
        """Test one panel and one sparkline per tracked chart metric."""
        app = OverlayApp(make_context())
        async with app.run_test():
            assert len(app.query(StatsPanel)) == 1
            sparks = app.query(Sparkline)
            assert [s.id for s in sparks] == ["spark-cpu_usage"]
            assert len(app.query("Header")) == 1

    @pytest.mark.asyncio
    async def test_placeholder_before_first_tick(self) -> None:
        app = OverlayApp(make_context(overlay={"auto_show": False}))
        async with app.run_test():
            panel = app.query_one("#stats", StatsPanel)
            assert panel.text_lines == ["CPU Temp: --", "CPU Usage: --", "GPU Temp: --"]
            assert not app.query_one("#overlay").display
            assert app.query_one("#hidden-hint").display

    @pytest.mark.asyncio
    async def test_snapshot_rendered(self) -> None:
        context = make_context()
        app = OverlayApp(context)
        async with app.run_test() as pilot:
            await wait_for_snapshot(pilot, context)

            panel = app.query_one("#stats", StatsPanel)
            assert "CPU Temp: 50.0°C" in panel.text_lines
            assert "GPU Temp: --" in panel.text_lines
            spark = app.query_one("#spark-cpu_usage", Sparkline)
            assert spark.values[0] == 25.0

    @pytest.mark.asyncio
    async def test_toggle_key_hides_and_shows(self) -> None:
        context = make_context()
        app = OverlayApp(context)
        async with app.run_test() as pilot:
            assert context.scheduler.visible

            await pilot.press("g")
            await pilot.pause()
            assert not context.scheduler.visible
            assert context.scheduler.active_timers == 0
            assert not app.query_one("#overlay").display

            await pilot.press("g")
            await pilot.pause()
            assert context.scheduler.visible
            assert context.scheduler.active_timers == 1
            assert app.query_one("#overlay").display

    @pytest.mark.asyncio
    async def test_snapshot_from_earlier_visible_period_dropped(self) -> None:
        context = make_context()
        app = OverlayApp(context)
        async with app.run_test() as pilot:
            await wait_for_snapshot(pilot, context)
            stale_generation = context.scheduler.generation
            stale = Snapshot(values={Metric.CPU_TEMP: NumericValue(value=99.0, unit="°C")})

            await pilot.press("g")
            await pilot.press("g")
            app.post_message(SnapshotReady(stale, stale_generation))
            await pilot.pause(0.2)

            panel = app.query_one("#stats", StatsPanel)
            assert context.scheduler.generation != stale_generation
            assert "CPU Temp: 99.0°C" not in panel.text_lines

    @pytest.mark.asyncio
    async def test_no_updates_while_hidden(self) -> None:
        context = make_context()
        app = OverlayApp(context)
        async with app.run_test() as pilot:
            await wait_for_snapshot(pilot, context)
            await pilot.press("g")
            delivered = context.scheduler.ticks_delivered

            await pilot.pause(0.3)

            assert context.scheduler.ticks_delivered == delivered

    @pytest.mark.asyncio
    async def test_quit_key(self) -> None:
        """Test app shuts down with 'q' key."""
        app = OverlayApp(make_context())
        async with app.run_test() as pilot:
            await pilot.press("q")
