"""Terminal overlay for overlaymon.

This module provides the Textual app that consumes snapshots, draws
history sparklines and toggles visibility on a key binding.
"""

from overlaymon.tui.app import OverlayApp, run_app

__all__ = ["OverlayApp", "run_app"]
