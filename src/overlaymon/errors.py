"""Error taxonomy for overlaymon.

- ProbeFailure: a single data source could not produce a value. Always caught
  at the probe boundary and reported as unavailable.
- DeadlineExceeded: a probe chain did not finish before the tick deadline.
  Reported as unavailable for that tick.
- ConfigurationError: malformed static configuration. Fatal at startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from overlaymon.models.base import Metric


class OverlaymonError(Exception):
    """Base exception for overlaymon."""


class ProbeFailure(OverlaymonError):
    """A probe's data source failed (missing tool, bad output, zero totals)."""


class DeadlineExceeded(OverlaymonError):
    """A probe chain was still running when the tick deadline passed."""

    def __init__(self, metric: Metric, deadline: float) -> None:
        self.metric = metric
        self.deadline = deadline
        super().__init__(f"Chain for '{metric.value}' missed the {deadline:.3f}s deadline")


class ConfigurationError(OverlaymonError):
    """Static configuration is invalid (unknown metric, mismatched chain, bad shape)."""
