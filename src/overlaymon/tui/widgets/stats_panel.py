"""Stats panel widget: one "<label>: <value>" line per enabled metric."""

from collections.abc import Sequence

from rich.text import Text
from textual.widgets import Static

from overlaymon.formatters.display import DEFAULT_PLACEHOLDER, format_metric
from overlaymon.models.base import Metric, Snapshot


class StatsPanel(Static):
    """Text block listing the latest value of each metric.

    Attributes:
        metrics: Metrics shown, in display order
        placeholder: Text for unavailable metrics
        decimals: Digits after the decimal point
        text_lines: The "<label>: <value>" lines currently shown
    """

    DEFAULT_CSS = """
    StatsPanel {
        width: 100%;
        height: auto;
    }
    """

    def __init__(
        self,
        metrics: Sequence[Metric],
        placeholder: str = DEFAULT_PLACEHOLDER,
        decimals: int = 1,
        *,
        id: str | None = None,  # noqa: A002
    ) -> None:
        self.metrics = list(metrics)
        self.placeholder = placeholder
        self.decimals = decimals
        self.text_lines: list[str] = [format_metric(m, None, placeholder) for m in self.metrics]
        super().__init__(self._build_text(), id=id)

    def _build_text(self) -> Text:
        text = Text()
        for i, line in enumerate(self.text_lines):
            label, _, value = line.partition(": ")
            if i:
                text.append("\n")
            text.append(f"{label}: ", style="bold cyan")
            text.append(value, style="dim" if value == self.placeholder else "")
        return text

    def show_snapshot(self, snapshot: Snapshot) -> None:
        """Redraw the panel from a snapshot."""
        self.text_lines = [
            format_metric(m, snapshot[m], self.placeholder, self.decimals) for m in self.metrics
        ]
        self.update(self._build_text())
