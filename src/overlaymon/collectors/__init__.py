"""Collection layer for overlaymon.

This module provides the per-tick machinery:
- SnapshotCollector: Resolves every probe chain within a deadline
- RollingHistory: Fixed-capacity sample buffers for chart metrics
- OverlayScheduler: Visibility-driven periodic collection
"""

from overlaymon.collectors.collector import DEFAULT_DEADLINE, SnapshotCollector
from overlaymon.collectors.history import (
    DEFAULT_HISTORY_CAPACITY,
    HistoryStats,
    RollingHistory,
    sample_of,
)
from overlaymon.collectors.scheduler import (
    DEFAULT_INTERVAL,
    OverlayScheduler,
    SnapshotListener,
    Visibility,
)

__all__ = [
    # Collector
    "SnapshotCollector",
    "DEFAULT_DEADLINE",
    # History
    "RollingHistory",
    "HistoryStats",
    "DEFAULT_HISTORY_CAPACITY",
    "sample_of",
    # Scheduler
    "OverlayScheduler",
    "SnapshotListener",
    "Visibility",
    "DEFAULT_INTERVAL",
]
