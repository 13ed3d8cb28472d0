"""Static per-metric chain declaration and validation.

Chains are declared once at startup from a table of metric -> probes
(build_default_chains by default) and the metric names enabled in
configuration. Every problem found here is a ConfigurationError.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import difflib

from overlaymon.errors import ConfigurationError
from overlaymon.models.base import Metric
from overlaymon.probes.base import Probe
from overlaymon.probes.chain import ProbeChain

METRIC_NAMES: tuple[str, ...] = tuple(m.value for m in Metric)


def coerce_metric(value: Metric | str) -> Metric:
    """Convert a metric name to a Metric.

    Args:
        value: A Metric or its name (e.g. "cpu_temp")

    Returns:
        The matching Metric

    Raises:
        ConfigurationError: If the name is unknown (with a suggestion if close)
    """
    if isinstance(value, Metric):
        return value
    name = str(value).strip().lower()
    try:
        return Metric(name)
    except ValueError:
        pass

    message = f"Unknown metric '{value}'"
    close = difflib.get_close_matches(name, METRIC_NAMES, n=1, cutoff=0.6)
    if close:
        message += f". Did you mean '{close[0]}'?"
    raise ConfigurationError(message)


def build_chains(
    table: Mapping[Metric, Sequence[Probe]],
    metrics: Iterable[Metric | str] | None = None,
) -> dict[Metric, ProbeChain]:
    """Build validated probe chains for the enabled metrics.

    Args:
        table: Probes per metric in priority order
        metrics: Metrics to enable (every metric in the table if None)

    Returns:
        Chains keyed by metric, in the order metrics were requested

    Raises:
        ConfigurationError: If a metric is unknown, has no declared chain,
            or a probe targets a different metric
    """
    if metrics is None:
        selected = [coerce_metric(m) for m in table]
    else:
        selected = [coerce_metric(m) for m in metrics]

    chains: dict[Metric, ProbeChain] = {}
    for metric in selected:
        if metric in chains:
            continue
        if metric not in table:
            raise ConfigurationError(f"No probe chain declared for '{metric.value}'")
        chains[metric] = ProbeChain(metric, table[metric])
    return chains
