"""Probe framework for overlaymon.

A probe is one concrete way to obtain one metric: read a pseudo-file, run
an external tool and parse its output, or call into psutil. Probes are
timeout-bounded and never raise past attempt(): every failure collapses
to UNAVAILABLE.

- Probe: Abstract base class implementing the attempt() boundary
- CommandProbe: Runs an external command and parses stdout
- FileProbe: Reads a pseudo-file (path or glob) and parses its text
- BlockingProbe: Base for probes whose read blocks; runs it on a daemon thread
- CallableProbe: Calls a synchronous function in a worker thread
- CounterRateProbe: Turns a cumulative byte counter into a KB/s rate
- UnavailableProbe: Always reports unavailable (chain terminator)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Callable, Sequence
import contextlib
from functools import partial
import glob
import logging
from pathlib import Path
import threading
import time
from typing import Any

from overlaymon.errors import ProbeFailure
from overlaymon.models.base import (
    UNAVAILABLE,
    Metric,
    MetricValue,
    RawValue,
    make_value,
    value_shape,
)

logger = logging.getLogger(__name__)

# Default bound for a single probe when no timeout is passed to attempt()
DEFAULT_PROBE_TIMEOUT = 0.8

TextParser = Callable[[str], RawValue]


class Probe(ABC):
    """Abstract base class for probes.

    Subclasses implement read(), which may raise anything. attempt() wraps
    it with a timeout and converts every failure into UNAVAILABLE.

    Attributes:
        metric: The metric this probe produces
        name: Identifier used in logs and diagnostics
        timeout: Default timeout in seconds for attempt()
    """

    def __init__(
        self,
        metric: Metric,
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.metric = Metric(metric)
        self.name = name or f"{type(self).__name__}:{self.metric.value}"
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def reset(self) -> None:
        """Forget any state carried between attempts."""

    @abstractmethod
    async def read(self) -> RawValue:
        """Query the data source.

        Returns:
            A number, a (used, total) pair for ratio metrics, or None
            when the source has no value

        Raises:
            Exception: Any failure; attempt() reports it as unavailable
        """
        ...

    async def attempt(self, timeout: float | None = None) -> MetricValue:
        """Query the data source with a timeout.

        Args:
            timeout: Bound in seconds (uses the probe default if None)

        Returns:
            The metric value, or UNAVAILABLE on any failure
        """
        bound = timeout if timeout is not None else self.timeout

        try:
            raw = await asyncio.wait_for(self.read(), timeout=bound)
            value = make_value(self.metric, raw)
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            logger.debug("Probe '%s' timed out after %.3fs", self.name, bound)
            return UNAVAILABLE
        except Exception as e:
            logger.debug("Probe '%s' unavailable: %s: %s", self.name, type(e).__name__, e)
            return UNAVAILABLE

        if value.available and value_shape(value) is not self.metric.shape:
            logger.debug("Probe '%s' produced a %s value", self.name, value.kind)
            return UNAVAILABLE
        return value


async def run_command(argv: Sequence[str]) -> str:
    """Run an external command and return its stripped stdout.

    The child is killed if the caller is cancelled (e.g. by a timeout).

    Args:
        argv: Program and arguments (no shell)

    Returns:
        Decoded, stripped standard output

    Raises:
        ProbeFailure: If the program is missing, exits non-zero or prints nothing
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError as e:
        raise ProbeFailure(f"{argv[0]} not found") from e

    try:
        stdout, _ = await proc.communicate()
    finally:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()

    if proc.returncode != 0:
        raise ProbeFailure(f"{argv[0]} exited with status {proc.returncode}")

    text = stdout.decode(errors="replace").strip()
    if not text:
        raise ProbeFailure(f"{argv[0]} printed nothing")
    return text


def read_text(path: str) -> str:
    """Read a pseudo-file, resolving glob patterns to their first match.

    Raises:
        ProbeFailure: If nothing matches or the file is empty
        OSError: If the file cannot be read
    """
    if any(char in path for char in "*?["):
        matches = sorted(glob.glob(path))
        if not matches:
            raise ProbeFailure(f"No file matches {path}")
        path = matches[0]

    text = Path(path).read_text(errors="replace").strip()
    if not text:
        raise ProbeFailure(f"{path} is empty")
    return text


class CommandProbe(Probe):
    """Probe that runs an external command and parses its output."""

    def __init__(
        self,
        metric: Metric,
        argv: Sequence[str],
        parser: TextParser,
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        if not argv:
            raise ValueError("argv must not be empty")
        super().__init__(
            metric,
            name=name or f"cmd:{argv[0]}:{Metric(metric).value}",
            timeout=timeout,
        )
        self.argv = tuple(argv)
        self.parser = parser

    async def read(self) -> RawValue:
        output = await run_command(self.argv)
        return self.parser(output)


class BlockingProbe(Probe):
    """Base class for probes whose data source is a blocking call.

    Each read runs on its own daemon thread. A timed-out read cannot be
    interrupted, so the thread is left to finish on its own; until it does,
    further attempts fail fast instead of piling up more threads on the same
    stuck source. Nothing joins these threads, so a hung read never delays
    event loop or interpreter shutdown.
    """

    def __init__(
        self,
        metric: Metric,
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        super().__init__(metric, name=name, timeout=timeout)
        self._in_flight = False

    @property
    def busy(self) -> bool:
        """Check if a previous read is still running."""
        return self._in_flight

    async def call_blocking(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run func(*args) on a daemon thread and await its result.

        Raises:
            ProbeFailure: If the previous read has not finished yet
        """
        if self.busy:
            raise ProbeFailure(f"Previous read of '{self.name}' is still running")

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def settle(result: Any, error: Exception | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def work() -> None:
            try:
                callback = partial(settle, func(*args), None)
            except Exception as e:
                callback = partial(settle, None, e)
            self._in_flight = False
            # The loop may already be closed if the caller gave up long ago
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(callback)

        self._in_flight = True
        try:
            threading.Thread(target=work, name=f"probe:{self.name}", daemon=True).start()
        except RuntimeError as e:
            self._in_flight = False
            raise ProbeFailure(f"Cannot start a thread for '{self.name}': {e}") from e
        return await future


class FileProbe(BlockingProbe):
    """Probe that reads a pseudo-file and parses its text.

    The read runs in a worker thread so the timeout applies even to
    filesystems that block.
    """

    def __init__(
        self,
        metric: Metric,
        path: str,
        parser: TextParser,
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        super().__init__(metric, name=name or f"file:{path}", timeout=timeout)
        self.path = path
        self.parser = parser

    async def read(self) -> RawValue:
        text = await self.call_blocking(read_text, self.path)
        return self.parser(text)


class CallableProbe(BlockingProbe):
    """Probe that calls a synchronous function (usually psutil) in a thread."""

    def __init__(
        self,
        metric: Metric,
        func: Callable[[], RawValue],
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        super().__init__(
            metric,
            name=name or f"call:{getattr(func, '__name__', 'func')}",
            timeout=timeout,
        )
        self.func = func

    async def read(self) -> RawValue:
        return await self.call_blocking(self.func)


class CounterRateProbe(BlockingProbe):
    """Probe that reports the rate of a cumulative byte counter in KB/s.

    The previous sample is kept between attempts. The first attempt has no
    baseline and counter resets (negative deltas) have no meaningful rate;
    both are unavailable.
    """

    def __init__(
        self,
        metric: Metric,
        read_counter: Callable[[], float],
        name: str | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(
            metric,
            name=name or f"rate:{getattr(read_counter, '__name__', 'counter')}",
            timeout=timeout,
        )
        self.read_counter = read_counter
        self._clock = clock
        self._previous: tuple[float, float] | None = None

    def reset(self) -> None:
        """Forget the baseline sample."""
        self._previous = None

    async def read(self) -> RawValue:
        counter = float(await self.call_blocking(self.read_counter))
        now = self._clock()
        previous = self._previous
        self._previous = (now, counter)

        if previous is None:
            raise ProbeFailure("No baseline sample yet")

        elapsed = now - previous[0]
        delta = counter - previous[1]
        if elapsed <= 0:
            raise ProbeFailure("No time elapsed since last sample")
        if delta < 0:
            raise ProbeFailure("Counter reset")
        return delta / elapsed / 1024.0


class UnavailableProbe(Probe):
    """Probe that never produces a value."""

    def __init__(self, metric: Metric, name: str | None = None) -> None:
        super().__init__(metric, name=name or f"unavailable:{Metric(metric).value}")

    async def read(self) -> RawValue:
        return None
