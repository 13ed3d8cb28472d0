"""JSON output for snapshots.

Serializes a Snapshot with pydantic's model_dump(mode="json") for each
value. Used by `overlaymon snapshot --json` and, in compact form, for the
NDJSON stream of `overlaymon watch --json`.
"""

from __future__ import annotations

import json
from typing import Any

from overlaymon.models.base import Snapshot


class JsonFormatter:
    """Format snapshots as JSON.

    Attributes:
        pretty_print: Whether to format with indentation (default: True)
    """

    def __init__(self, pretty_print: bool = True) -> None:
        """Initialize the JSON formatter.

        Args:
            pretty_print: If True, output indented JSON.
                         If False, output compact single-line JSON.
        """
        self.pretty_print = pretty_print

    def to_dict(
        self,
        snapshot: Snapshot,
        hostname: str | None = None,
        placeholder: str | None = None,
    ) -> dict[str, Any]:
        """Build the output document for a snapshot.

        Args:
            snapshot: The snapshot to serialize
            hostname: Host name to include (omitted if None)
            placeholder: Include the display placeholder if given

        Returns:
            Dictionary with timestamp, optional hostname and metrics
        """
        output: dict[str, Any] = {"timestamp": snapshot.timestamp.isoformat()}
        if hostname is not None:
            output["hostname"] = hostname
        if placeholder is not None:
            output["placeholder"] = placeholder
        output["metrics"] = snapshot.to_dict()["metrics"]
        return output

    def format(
        self,
        snapshot: Snapshot,
        hostname: str | None = None,
        placeholder: str | None = None,
    ) -> str:
        """Format a snapshot as a JSON string.

        Example:
            >>> formatter = JsonFormatter(pretty_print=True)
            >>> print(formatter.format(snapshot, hostname="myhost"))
            {
              "timestamp": "2024-01-15T10:30:00+00:00",
              "hostname": "myhost",
              "metrics": {
                "cpu_temp": {"kind": "numeric", "value": 45.5, "unit": "°C"},
                ...
              }
            }
        """
        output = self.to_dict(snapshot, hostname=hostname, placeholder=placeholder)
        if self.pretty_print:
            return json.dumps(output, indent=2, ensure_ascii=False)
        return json.dumps(output, separators=(",", ":"), ensure_ascii=False)
