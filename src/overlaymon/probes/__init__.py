"""Probes for overlaymon.

This module provides the data-source layer:
- Probe and its variants: One timeout-bounded way to obtain one metric
- ProbeChain: Ordered first-success fallback over probes of one metric
- build_default_chains: The built-in probe order for every metric
- build_chains: Validated chains for the enabled metrics
"""

from overlaymon.probes.base import (
    DEFAULT_PROBE_TIMEOUT,
    CallableProbe,
    CommandProbe,
    CounterRateProbe,
    FileProbe,
    Probe,
    UnavailableProbe,
    read_text,
    run_command,
)
from overlaymon.probes.builtin import build_default_chains
from overlaymon.probes.chain import ProbeChain
from overlaymon.probes.registry import build_chains, coerce_metric

__all__ = [
    # Probes
    "Probe",
    "CommandProbe",
    "FileProbe",
    "CallableProbe",
    "CounterRateProbe",
    "UnavailableProbe",
    "DEFAULT_PROBE_TIMEOUT",
    "run_command",
    "read_text",
    # Chains
    "ProbeChain",
    "build_chains",
    "build_default_chains",
    "coerce_metric",
]
