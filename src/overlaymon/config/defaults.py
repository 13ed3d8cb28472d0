"""Default configuration values for overlaymon.

This module defines the configuration used when no config file exists or
when a value is not specified. Every option is listed here for reference.

Environment Variables:
    OVERLAYMON_CONFIG_PATH: Override default config file path
    OVERLAYMON_SENTRY_DSN: Enable error reporting without a config entry
    Any config value can reference environment variables using ${VAR} syntax

Config File Locations (in order of precedence):
    1. Path specified via --config CLI flag
    2. Path specified via OVERLAYMON_CONFIG_PATH environment variable
    3. ~/.config/overlaymon/config.yaml (XDG default)
    4. ~/.overlaymon/config.yaml (legacy location)
"""

from typing import Any

from overlaymon.models.base import Metric

DEFAULT_CONFIG: dict[str, Any] = {
    # Core settings
    "interval": 1.0,  # Seconds between ticks; also the per-tick deadline
    "probe_timeout": None,  # Per-probe bound; None = min(0.8, interval)
    "history_capacity": 30,  # Samples kept per chart metric
    "metrics": [m.value for m in Metric],  # Enabled metrics, in display order
    # Data sources
    "collection": {
        "disk_path": "/",  # Mount point reported by disk_usage
    },
    # Overlay behavior
    "overlay": {
        "auto_show": True,  # Start visible
        "toggle_key": "g",  # Key that shows/hides the overlay
        "placeholder": "--",  # Text shown for unavailable metrics
        "decimal_places": 1,
    },
    # Logging
    "logging": {
        "enabled": False,
        "level": "INFO",  # DEBUG, INFO, WARNING, ERROR
        "file": "~/.overlaymon/overlaymon.log",
    },
    # Error reporting (disabled unless a DSN is set)
    "sentry": {
        "dsn": None,
        "environment": "production",
        "traces_sample_rate": 0.0,
    },
}
