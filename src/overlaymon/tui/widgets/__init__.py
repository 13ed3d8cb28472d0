"""Widgets for the overlaymon TUI."""

from overlaymon.tui.widgets.sparkline import Sparkline, get_value_color, value_to_char
from overlaymon.tui.widgets.stats_panel import StatsPanel

__all__ = [
    "Sparkline",
    "StatsPanel",
    "get_value_color",
    "value_to_char",
]
