"""Sparkline widget for the overlaymon TUI.

Draws a metric's rolling history as a one-line bar graph using Unicode
block characters " ▁▂▃▄▅▆▇█" (space for 0, full block for maximum).

Color follows the most recent sample:
- Green: below 50%
- Yellow: 50-80%
- Red: 80% and above
"""

from collections.abc import Sequence
from typing import ClassVar

from rich.console import RenderableType
from rich.text import Text
from textual.reactive import reactive
from textual.widget import Widget

# Unicode block characters for sparkline (9 levels: 0-8)
SPARK_CHARS = " ▁▂▃▄▅▆▇█"

# Color thresholds for usage display
THRESHOLD_LOW = 50.0
THRESHOLD_MEDIUM = 80.0


def value_to_char(value: float, min_val: float = 0.0, max_val: float = 100.0) -> str:
    """Convert a value to a sparkline character.

    Args:
        value: The value to convert
        min_val: Minimum value in the range
        max_val: Maximum value in the range

    Returns:
        A block character representing the value
    """
    if max_val == min_val:
        return SPARK_CHARS[4]

    value = max(min_val, min(max_val, value))
    index = int((value - min_val) / (max_val - min_val) * 8)
    return SPARK_CHARS[max(0, min(8, index))]


def get_value_color(value: float) -> str:
    """Get the color name for a percentage: green, yellow or red."""
    if value < THRESHOLD_LOW:
        return "green"
    if value < THRESHOLD_MEDIUM:
        return "yellow"
    return "red"


def render_spark(
    values: Sequence[float],
    width: int,
    min_value: float = 0.0,
    max_value: float = 100.0,
    placeholder: str = "-",
) -> Text:
    """Render the last `width` values as colored block characters.

    Short histories are right-aligned; an empty history renders as a row
    of placeholder characters.
    """
    shown = list(values)[-width:]
    if not shown:
        return Text(placeholder[:1] * width, style="dim")

    chars = "".join(value_to_char(v, min_value, max_value) for v in shown)
    return Text(chars.rjust(width), style=get_value_color(shown[-1]))


class Sparkline(Widget):
    """A one-line history chart fed from the rolling history.

    Example:
        sparkline = Sparkline(label="CPU", width=30)
        sparkline.set_values(history.values(Metric.CPU_USAGE))
    """

    DEFAULT_CSS: ClassVar[str] = """
    Sparkline {
        width: 100%;
        height: 1;
    }
    """

    label: reactive[str] = reactive("")
    width: reactive[int] = reactive(30)

    def __init__(
        self,
        label: str = "",
        width: int = 30,
        min_value: float = 0.0,
        max_value: float = 100.0,
        *,
        name: str | None = None,
        id: str | None = None,  # noqa: A002
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.label = label
        self.width = width
        self.min_value = min_value
        self.max_value = max_value
        self._values: list[float] = []

    @property
    def values(self) -> list[float]:
        """Get the values currently drawn."""
        return list(self._values)

    def set_values(self, values: Sequence[float]) -> None:
        """Replace the drawn values (oldest first)."""
        self._values = list(values)
        self.refresh()

    def render(self) -> RenderableType:
        result = Text()
        if self.label:
            result.append(f"{self.label} ", style="dim")
        result.append_text(render_spark(self._values, self.width, self.min_value, self.max_value))
        return result
