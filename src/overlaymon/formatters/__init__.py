"""Output formatters for overlaymon.

This module provides:
- format_value / format_metric / snapshot_rows: Display text with a single placeholder
- JsonFormatter: JSON output for snapshots
"""

from overlaymon.formatters.display import (
    DEFAULT_PLACEHOLDER,
    format_metric,
    format_number,
    format_value,
    snapshot_rows,
)
from overlaymon.formatters.json_formatter import JsonFormatter

__all__ = [
    "DEFAULT_PLACEHOLDER",
    "JsonFormatter",
    "format_metric",
    "format_number",
    "format_value",
    "snapshot_rows",
]
