"""Custom Textual messages for the overlaymon TUI.

This module defines messages passed from the collection layer to widgets:
- SnapshotReady: Posted when the scheduler delivers a snapshot
- VisibilityChanged: Posted when the overlay is shown or hidden
"""

from textual.message import Message

from overlaymon.models.base import Snapshot


class SnapshotReady(Message):
    """Posted when a new snapshot has been delivered.

    The scheduler's listener runs on the app's event loop and posts this
    message; the app handles it by refreshing the panel and charts.

    Attributes:
        snapshot: The delivered snapshot
        generation: Scheduler generation the snapshot was delivered in
    """

    def __init__(self, snapshot: Snapshot, generation: int) -> None:
        self.snapshot = snapshot
        self.generation = generation
        super().__init__()


class VisibilityChanged(Message):
    """Posted when the overlay is shown or hidden.

    Attributes:
        visible: Whether the overlay is now visible
    """

    def __init__(self, visible: bool) -> None:
        self.visible = visible
        super().__init__()
