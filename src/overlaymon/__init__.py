"""overlaymon - live system stats for a toggleable desktop overlay."""

__version__ = "0.1.0"
