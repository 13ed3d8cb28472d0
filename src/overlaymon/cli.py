"""Command-line interface for overlaymon.

This module provides:
- Typer-based CLI application
- Config file loading with CLI overrides
- Logging and error-reporting setup
- One command per way of consuming snapshots

Usage:
    overlaymon snapshot          # One collection as a table
    overlaymon snapshot --json   # One collection as JSON
    overlaymon watch --count 5   # Five ticks, then exit
    overlaymon probes            # Which probe won for each metric
    overlaymon overlay           # Interactive overlay (toggle with 'g')

Examples:
    # Stream snapshots as NDJSON every two seconds
    overlaymon watch --json --interval 2

    # Use a custom configuration file
    overlaymon snapshot --config ~/.config/overlaymon/custom.yaml
"""

import asyncio
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import socket
from typing import Annotated, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
import typer

from overlaymon import __version__
from overlaymon.config import Config, load_config
from overlaymon.config.loader import CONFIG_PATH_ENV
from overlaymon.context import OverlayContext
from overlaymon.errors import ConfigurationError
from overlaymon.formatters import JsonFormatter, snapshot_rows
from overlaymon.models.base import Snapshot
from overlaymon.sentry import init_sentry, set_overlay_context

# Create the main Typer app
app = typer.Typer(
    name="overlaymon",
    help="System stats overlay - CPU, GPU, memory and network at a glance",
    no_args_is_help=False,
    add_completion=True,
    rich_markup_mode="rich",
)

# Console for rich output
console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"overlaymon version {__version__}")
        raise typer.Exit()


def build_cli_overrides(
    interval: float | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Build config override dict from CLI flags.

    Args:
        interval: Polling interval override
        timeout: Per-probe timeout override

    Returns:
        Dictionary of config overrides
    """
    overrides: dict[str, Any] = {}
    if interval is not None:
        overrides["interval"] = interval
    if timeout is not None:
        overrides["probe_timeout"] = timeout
    return overrides


def setup_logging(config: Config, debug: bool = False) -> None:
    """Configure the overlaymon logger from the logging config section.

    Args:
        config: Validated configuration
        debug: Also log DEBUG and above to stderr through rich
    """
    if not config.logging.enabled and not debug:
        return

    root = logging.getLogger("overlaymon")
    root.setLevel(logging.DEBUG if debug else config.logging.level)

    if config.logging.enabled:
        path = Path(config.logging.file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(path, maxBytes=2 * 1024 * 1024, backupCount=3)
        except OSError as e:
            err_console.print(f"[yellow]Warning:[/yellow] cannot log to {path}: {e}")
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handler.setLevel(config.logging.level)
            root.addHandler(handler)

    if debug:
        rich_handler = RichHandler(console=err_console, show_path=False)
        rich_handler.setLevel(logging.DEBUG)
        root.addHandler(rich_handler)


def prepare(
    config: Path | None,
    interval: float | None,
    timeout: float | None,
    debug: bool,
    mode: str,
) -> Config:
    """Load configuration and set up logging and error reporting.

    Raises:
        typer.Exit: With code 1 if the configuration cannot be loaded
    """
    try:
        config_path = str(config) if config else None
        cfg = load_config(
            config_path=config_path,
            cli_overrides=build_cli_overrides(interval, timeout),
        )
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e

    setup_logging(cfg, debug=debug)
    if init_sentry(
        dsn=cfg.sentry.dsn,
        environment=cfg.sentry.environment,
        traces_sample_rate=cfg.sentry.traces_sample_rate,
        debug=debug,
    ):
        set_overlay_context(
            mode=mode,
            metrics=[m.value for m in cfg.metrics],
            interval=cfg.interval,
            config_path=config_path,
        )
    return cfg


def create_context(config: Config) -> OverlayContext:
    """Build the application context.

    Raises:
        typer.Exit: With code 1 if the chains cannot be built
    """
    try:
        return OverlayContext(config)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e


def render_table(
    snapshot: Snapshot,
    config: Config,
    sources: dict[str, str] | None = None,
) -> Table:
    """Render a snapshot as a rich table.

    Args:
        snapshot: The snapshot to render
        config: Configuration (placeholder and decimals)
        sources: Optional metric name -> winning probe name column
    """
    table = Table(title=f"overlaymon {snapshot.timestamp:%H:%M:%S}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    if sources is not None:
        table.add_column("Source", style="dim")

    rows = snapshot_rows(
        snapshot,
        placeholder=config.overlay.placeholder,
        decimals=config.overlay.decimal_places,
    )
    for metric, (label, text) in zip(snapshot, rows, strict=True):
        if not snapshot[metric].available:
            text = f"[dim]{text}[/dim]"
        row = [label, text]
        if sources is not None:
            row.append(sources.get(metric.value) or "unavailable")
        table.add_row(*row)
    return table


# Common options
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to custom config file",
        envvar=CONFIG_PATH_ENV,
        exists=False,  # load_config reports missing files itself
    ),
]

IntervalOption = Annotated[
    float | None,
    typer.Option(
        "--interval",
        "-i",
        help="Polling interval (and tick deadline) in seconds",
        min=0.1,
        max=3600,
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        help="Per-probe timeout in seconds (must not exceed the interval)",
        min=0.01,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Log probe failures and deadline misses to stderr",
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        "-j",
        help="Output JSON instead of a table",
    ),
]

PrettyOption = Annotated[
    bool,
    typer.Option(
        "--pretty/--no-pretty",
        help="Pretty-print JSON output",
    ),
]

CountOption = Annotated[
    int | None,
    typer.Option(
        "--count",
        "-n",
        help="Stop after this many snapshots (default: run until interrupted)",
        min=1,
    ),
]

VersionOption = Annotated[
    bool | None,
    typer.Option(
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
]


@app.callback()
def main(version: VersionOption = None) -> None:
    """overlaymon - system stats overlay.

    Polls CPU, GPU, memory, disk, battery, network, uptime and load
    through ordered fallback probes and shows them as live text and charts.
    """


async def collect_once(context: OverlayContext) -> Snapshot:
    """Run one collection and tear the context down."""
    async with context:
        return await context.collector.collect()


@app.command("snapshot")
def snapshot_command(
    config: ConfigOption = None,
    interval: IntervalOption = None,
    timeout: TimeoutOption = None,
    json_format: JsonOption = False,
    pretty: PrettyOption = True,
    debug: DebugOption = False,
) -> None:
    """Collect one snapshot and print it."""
    cfg = prepare(config, interval, timeout, debug, mode="snapshot")
    context = create_context(cfg)
    snapshot = asyncio.run(collect_once(context))

    if json_format:
        formatter = JsonFormatter(pretty_print=pretty)
        print(formatter.format(snapshot, hostname=socket.gethostname()))
    else:
        console.print(render_table(snapshot, cfg))


async def run_watch(
    context: OverlayContext,
    json_format: bool = False,
    count: int | None = None,
) -> int:
    """Show the overlay headlessly and print each delivered snapshot.

    Args:
        context: Application context
        json_format: Print NDJSON instead of tables
        count: Stop after this many snapshots (None = until cancelled)

    Returns:
        Number of snapshots printed
    """
    formatter = JsonFormatter(pretty_print=False)
    done = asyncio.Event()
    printed = 0

    async def on_snapshot(snapshot: Snapshot) -> None:
        nonlocal printed
        if json_format:
            print(formatter.format(snapshot), flush=True)
        else:
            console.print(render_table(snapshot, context.config))
        printed += 1
        if count is not None and printed >= count:
            done.set()

    context.scheduler.add_listener(on_snapshot)
    async with context:
        context.scheduler.show()
        await done.wait()
    return printed


@app.command("watch")
def watch_command(
    config: ConfigOption = None,
    interval: IntervalOption = None,
    timeout: TimeoutOption = None,
    json_format: JsonOption = False,
    count: CountOption = None,
    debug: DebugOption = False,
) -> None:
    """Print a snapshot every interval until interrupted."""
    cfg = prepare(config, interval, timeout, debug, mode="watch")
    context = create_context(cfg)
    try:
        asyncio.run(run_watch(context, json_format=json_format, count=count))
    except KeyboardInterrupt:
        raise typer.Exit(0) from None


async def resolve_sources(context: OverlayContext) -> tuple[Snapshot, dict[str, str]]:
    """Collect once and report which probe produced each metric."""
    async with context:
        snapshot = await context.collector.collect()
    sources = {
        metric.value: chain.last_source
        for metric, chain in context.chains.items()
        if chain.last_source is not None and snapshot[metric].available
    }
    return snapshot, sources


@app.command("probes")
def probes_command(
    config: ConfigOption = None,
    interval: IntervalOption = None,
    timeout: TimeoutOption = None,
    debug: DebugOption = False,
) -> None:
    """Show which probe answers for each metric on this machine."""
    cfg = prepare(config, interval, timeout, debug, mode="probes")
    context = create_context(cfg)
    snapshot, sources = asyncio.run(resolve_sources(context))

    console.print(render_table(snapshot, cfg, sources=sources))
    missing = [m.value for m in snapshot if not snapshot[m].available]
    if missing:
        console.print(f"[yellow]Unavailable:[/yellow] {', '.join(missing)}")


@app.command("overlay")
def overlay_command(
    config: ConfigOption = None,
    interval: IntervalOption = None,
    timeout: TimeoutOption = None,
    debug: DebugOption = False,
) -> None:
    """Run the interactive overlay."""
    cfg = prepare(config, interval, timeout, debug, mode="overlay")
    context = create_context(cfg)

    # Import here to avoid loading Textual when not needed
    from overlaymon.tui import run_app

    run_app(context)
