"""Tests for display text formatting."""

import pytest

from overlaymon.formatters import format_metric, format_value, snapshot_rows
from overlaymon.formatters.display import format_number
from overlaymon.models import (
    UNAVAILABLE,
    DurationValue,
    Metric,
    NumericValue,
    RatioValue,
    Snapshot,
)


class TestFormatNumber:
    """Tests for format_number()."""

    @pytest.mark.parametrize(
        ("value", "unit", "expected"),
        [
            (45.5, "°C", "45.5°C"),
            (12.0, "%", "12.0%"),
            (3600.0, "MHz", "3600.0 MHz"),
            (1200.0, "RPM", "1200.0 RPM"),
            (0.52, "", "0.5"),
        ],
    )
    def test_units(self, value: float, unit: str, expected: str) -> None:
        assert format_number(value, unit) == expected

    def test_decimals(self) -> None:
        assert format_number(35.1234, "W", decimals=2) == "35.12 W"
        assert format_number(35.6, "W", decimals=0) == "36 W"


class TestFormatValue:
    """Tests for format_value() and format_metric()."""

    def test_numeric(self) -> None:
        assert format_value(NumericValue(value=65.0, unit="°C")) == "65.0°C"

    def test_ratio(self) -> None:
        value = RatioValue(used=1024.4, total=8192.0, unit="MiB")
        assert format_value(value) == "1024/8192 MiB"

    def test_duration(self) -> None:
        assert format_value(DurationValue(seconds=93784)) == "1d 2h 3m 4s"

    def test_unavailable_uses_placeholder(self) -> None:
        assert format_value(UNAVAILABLE) == "--"
        assert format_value(None) == "--"
        assert format_value(UNAVAILABLE, placeholder="N/A") == "N/A"

    def test_format_metric(self) -> None:
        assert format_metric(Metric.CPU_TEMP, NumericValue(value=45.5, unit="°C")) == (
            "CPU Temp: 45.5°C"
        )
        assert format_metric(Metric.GPU_TEMP, UNAVAILABLE) == "GPU Temp: --"


class TestSnapshotRows:
    """Tests for snapshot_rows()."""

    def test_rows_in_snapshot_order(self) -> None:
        snapshot = Snapshot(
            values={
                Metric.RAM_USAGE: NumericValue(value=42.0, unit="%"),
                Metric.GPU_TEMP: UNAVAILABLE,
            }
        )
        assert snapshot_rows(snapshot) == [("RAM Usage", "42.0%"), ("GPU Temp", "--")]

    def test_selected_metrics_include_missing(self) -> None:
        snapshot = Snapshot(values={Metric.LOAD_AVG: NumericValue(value=0.52)})
        rows = snapshot_rows(
            snapshot, [Metric.BATTERY, Metric.LOAD_AVG], placeholder="?", decimals=2
        )
        assert rows == [("Battery", "?"), ("Load Avg", "0.52")]
