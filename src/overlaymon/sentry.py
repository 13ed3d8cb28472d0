"""Sentry SDK integration for overlaymon.

Error reporting is opt-in: init_sentry() does nothing unless a DSN is
configured (config `sentry.dsn` or the OVERLAYMON_SENTRY_DSN variable).
The helpers below are safe to call either way; without an initialized
client the SDK drops the data.

Usage:
    from overlaymon.sentry import init_sentry, set_overlay_context, add_breadcrumb

    init_sentry(dsn=config.sentry.dsn)
    set_overlay_context(mode="overlay", metrics=["cpu_temp", "gpu_temp"], interval=1.0)
    add_breadcrumb("Overlay shown", category="scheduler")
"""

from __future__ import annotations

import logging
import os
import platform
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from overlaymon import __version__

SENTRY_DSN_ENV = "OVERLAYMON_SENTRY_DSN"


def resolve_dsn(dsn: str | None = None) -> str | None:
    """Get the DSN to use, preferring an explicit value over the environment."""
    return dsn or os.environ.get(SENTRY_DSN_ENV) or None


def init_sentry(
    *,
    dsn: str | None = None,
    environment: str = "production",
    traces_sample_rate: float = 0.0,
    debug: bool = False,
    event_level: int = logging.ERROR,
) -> bool:
    """Initialize Sentry SDK when a DSN is available.

    Configures Sentry with:
    - AsyncioIntegration for errors in scheduler and chain tasks
    - LoggingIntegration (INFO+ as breadcrumbs, event_level+ as events)
    - Default tags for filtering

    Args:
        dsn: Sentry DSN (falls back to OVERLAYMON_SENTRY_DSN)
        environment: Environment name reported with events
        traces_sample_rate: Sample rate for performance traces (0.0-1.0)
        debug: Enable Sentry debug mode for troubleshooting
        event_level: Minimum log level that creates Sentry events

    Returns:
        True if Sentry was initialized, False if no DSN was configured
    """
    resolved = resolve_dsn(dsn)
    if resolved is None:
        return False

    sentry_sdk.init(
        dsn=resolved,
        traces_sample_rate=traces_sample_rate,
        debug=debug,
        send_default_pii=False,
        environment=environment,
        release=f"overlaymon@{__version__}",
        integrations=[
            AsyncioIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=event_level,
            ),
        ],
        before_send=_before_send,
    )

    sentry_sdk.set_tag("app.version", __version__)
    sentry_sdk.set_tag("python.version", platform.python_version())
    sentry_sdk.set_tag("os.name", platform.system())
    sentry_sdk.set_tag("arch", platform.machine())
    return True


def _before_send(
    event: dict[str, Any],
    hint: dict[str, Any],
) -> dict[str, Any] | None:
    """Drop KeyboardInterrupt events before they are sent."""
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]
        if exc_type is KeyboardInterrupt:
            return None
    return event


def set_overlay_context(
    *,
    mode: str | None = None,
    metrics: list[str] | None = None,
    interval: float | None = None,
    config_path: str | None = None,
) -> None:
    """Set overlaymon-specific context for error tracking.

    Args:
        mode: Current mode (snapshot, watch, probes, overlay)
        metrics: Enabled metric names
        interval: Polling interval in seconds
        config_path: Path to config file if custom
    """
    context: dict[str, Any] = {}

    if mode is not None:
        context["mode"] = mode
        sentry_sdk.set_tag("overlaymon.mode", mode)

    if metrics is not None:
        context["metrics"] = metrics
        context["metric_count"] = len(metrics)

    if interval is not None:
        context["interval"] = interval

    if config_path is not None:
        context["config_path"] = config_path
        sentry_sdk.set_tag("overlaymon.custom_config", "true")

    if context:
        sentry_sdk.set_context("overlaymon", context)


def add_breadcrumb(
    message: str,
    category: str = "overlaymon",
    level: str = "info",
    data: dict[str, Any] | None = None,
) -> None:
    """Add a breadcrumb for debugging.

    Args:
        message: Description of the event
        category: Category for grouping (e.g., "scheduler", "config")
        level: Severity level (debug, info, warning, error)
        data: Additional data to attach
    """
    sentry_sdk.add_breadcrumb(
        message=message,
        category=category,
        level=level,
        data=data,
    )
