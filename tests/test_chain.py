"""Tests for ProbeChain first-success fallback."""

import asyncio

import pytest

from overlaymon.errors import ConfigurationError
from overlaymon.models import UNAVAILABLE, Metric, NumericValue
from overlaymon.probes.base import CounterRateProbe, Probe, UnavailableProbe
from overlaymon.probes.chain import ProbeChain


class CountingProbe(Probe):
    """Probe returning a fixed value and counting its invocations."""

    def __init__(
        self,
        metric: Metric,
        value: float | None,
        name: str,
        delay: float = 0.0,
    ) -> None:
        super().__init__(metric, name=name)
        self.value = value
        self.delay = delay
        self.calls = 0

    async def read(self) -> float | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.value is None:
            raise RuntimeError(f"{self.name} has no data")
        return self.value


class ResetTrackingProbe(CountingProbe):
    """CountingProbe that records reset() calls."""

    def __init__(self, metric: Metric, value: float | None, name: str) -> None:
        super().__init__(metric, value, name)
        self.resets = 0

    def reset(self) -> None:
        self.resets += 1


class BrokenBoundaryProbe(Probe):
    """Probe whose attempt() itself raises."""

    async def read(self) -> float:
        return 1.0

    async def attempt(self, timeout: float | None = None):  # type: ignore[override]
        raise RuntimeError("attempt is broken")


class TestProbeChain:
    """Tests for ProbeChain.resolve()."""

    @pytest.mark.asyncio
    async def test_all_fail_is_unavailable(self) -> None:
        probes = [CountingProbe(Metric.CPU_TEMP, None, f"p{i}") for i in range(3)]
        chain = ProbeChain(Metric.CPU_TEMP, probes)

        assert await chain.resolve() is UNAVAILABLE
        assert [p.calls for p in probes] == [1, 1, 1]
        assert chain.last_source is None

    @pytest.mark.asyncio
    async def test_first_success_stops_the_chain(self) -> None:
        probes = [
            CountingProbe(Metric.CPU_TEMP, None, "sensors"),
            CountingProbe(Metric.CPU_TEMP, 45.0, "psutil"),
            CountingProbe(Metric.CPU_TEMP, 99.0, "thermal_zone"),
        ]
        chain = ProbeChain(Metric.CPU_TEMP, probes)

        assert await chain.resolve() == NumericValue(value=45.0, unit="°C")
        assert [p.calls for p in probes] == [1, 1, 0]
        assert chain.last_source == "psutil"

    @pytest.mark.asyncio
    async def test_missing_gpu_tool_then_terminator(self) -> None:
        chain = ProbeChain(
            Metric.GPU_TEMP,
            [CountingProbe(Metric.GPU_TEMP, None, "nvidia-smi"), UnavailableProbe(Metric.GPU_TEMP)],
        )
        assert await chain.resolve() is UNAVAILABLE

    @pytest.mark.asyncio
    async def test_empty_chain_is_unavailable(self) -> None:
        chain = ProbeChain(Metric.BATTERY, [])
        assert len(chain) == 0
        assert await chain.resolve() is UNAVAILABLE

    @pytest.mark.asyncio
    async def test_timeout_moves_to_next_probe(self) -> None:
        probes = [
            CountingProbe(Metric.GPU_USAGE, 50.0, "slow", delay=5.0),
            CountingProbe(Metric.GPU_USAGE, 12.0, "fast"),
        ]
        chain = ProbeChain(Metric.GPU_USAGE, probes)

        assert await chain.resolve(timeout=0.05) == NumericValue(value=12.0, unit="%")
        assert chain.last_source == "fast"

    @pytest.mark.asyncio
    async def test_raising_attempt_counts_as_miss(self) -> None:
        chain = ProbeChain(
            Metric.LOAD_AVG,
            [BrokenBoundaryProbe(Metric.LOAD_AVG), CountingProbe(Metric.LOAD_AVG, 0.5, "ok")],
        )
        assert await chain.resolve() == NumericValue(value=0.5, unit="")

    @pytest.mark.asyncio
    async def test_last_source_cleared_when_exhausted(self) -> None:
        probe = CountingProbe(Metric.BATTERY, 80.0, "psutil")
        chain = ProbeChain(Metric.BATTERY, [probe])
        await chain.resolve()
        assert chain.last_source == "psutil"

        probe.value = None
        await chain.resolve()
        assert chain.last_source is None

    def test_probe_for_other_metric_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="gpu_temp"):
            ProbeChain(Metric.CPU_TEMP, [UnavailableProbe(Metric.GPU_TEMP)])

    def test_repr_lists_probes(self) -> None:
        chain = ProbeChain(Metric.CPU_FAN, [CountingProbe(Metric.CPU_FAN, 1.0, "sensors")])
        assert repr(chain) == "<ProbeChain cpu_fan: [sensors]>"


class TestFallbackBaselines:
    """Tests for state carried by probes that lose to an earlier probe."""

    @pytest.mark.asyncio
    async def test_winner_resets_only_later_probes(self) -> None:
        earlier = ResetTrackingProbe(Metric.NET_DOWN, None, "earlier")
        winner = ResetTrackingProbe(Metric.NET_DOWN, 3.0, "winner")
        later = ResetTrackingProbe(Metric.NET_DOWN, 9.0, "later")
        chain = ProbeChain(Metric.NET_DOWN, [earlier, winner, later])

        await chain.resolve()
        await chain.resolve()

        assert (earlier.resets, winner.resets, later.resets) == (0, 0, 2)
        assert later.calls == 0

    @pytest.mark.asyncio
    async def test_fallback_rate_does_not_span_skipped_ticks(self) -> None:
        now = [0.0]
        primary_up = [False]
        counter = [0.0]

        def primary() -> float:
            if not primary_up[0]:
                raise OSError("counters unavailable")
            return 1.0

        fallback = CounterRateProbe(
            Metric.NET_DOWN, lambda: counter[0], name="procfs", clock=lambda: now[0]
        )
        chain = ProbeChain(
            Metric.NET_DOWN,
            [
                CounterRateProbe(Metric.NET_DOWN, primary, name="psutil", clock=lambda: now[0]),
                fallback,
            ],
        )

        # Tick 1: the fallback takes its first sample
        assert await chain.resolve() is UNAVAILABLE

        # Ticks 2-11: the primary answers while 100 KiB/s flows
        primary_up[0] = True
        for _ in range(10):
            now[0] += 1.0
            counter[0] += 100 * 1024
            await chain.resolve()

        # Traffic drops to 1 KiB/s and the primary fails
        primary_up[0] = False
        now[0] += 1.0
        counter[0] += 1024
        assert await chain.resolve() is UNAVAILABLE

        now[0] += 1.0
        counter[0] += 1024
        assert await chain.resolve() == NumericValue(value=1.0, unit="KB/s")
        assert chain.last_source == "procfs"
