"""Text and number normalization for probe output.

External tools and pseudo-files report numbers in many forms: "+45.5°C",
"45,5" (comma locales), "1200 RPM", "[N/A]". These helpers turn such text
into floats or raise ProbeFailure, which the probe boundary collapses to
an unavailable value.
"""

from __future__ import annotations

import re

from overlaymon.errors import ProbeFailure

# Optional sign, digits, optional decimal part with "." or "," separator
NUMBER_PATTERN = re.compile(r"[-+]?\d+(?:[.,]\d+)?")


def parse_number(text: str | None) -> float:
    """Parse the first number in a piece of text.

    Tolerates surrounding whitespace, a leading "+", trailing units and
    comma decimal separators.

    Args:
        text: Raw text such as " +45,5°C " or "1200 RPM"

    Returns:
        The parsed number

    Raises:
        ProbeFailure: If the text is empty or holds no number
    """
    if text is None:
        raise ProbeFailure("No text to parse")
    stripped = text.strip()
    if not stripped:
        raise ProbeFailure("Empty output")
    match = NUMBER_PATTERN.search(stripped)
    if match is None:
        raise ProbeFailure(f"No number in {stripped[:40]!r}")
    return float(match.group(0).replace(",", "."))


def parse_pattern(text: str, pattern: re.Pattern[str], group: int = 1) -> float:
    """Parse the number captured by a regex group.

    Args:
        text: Text to search
        pattern: Compiled pattern with a capturing group around the number
        group: Index of the capturing group

    Returns:
        The parsed number

    Raises:
        ProbeFailure: If the pattern does not match or captures no number
    """
    match = pattern.search(text)
    if match is None:
        raise ProbeFailure(f"Pattern {pattern.pattern!r} not found")
    return parse_number(match.group(group))


def first_line(text: str) -> str:
    """Return the first non-empty line of text.

    Raises:
        ProbeFailure: If there is no non-empty line
    """
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    raise ProbeFailure("Empty output")


def parse_scaled(text: str, divisor: float) -> float:
    """Parse a number and divide it (e.g. millidegrees to degrees)."""
    return parse_number(text) / divisor


def safe_percent(used: float, total: float) -> float:
    """Compute used/total as a percentage in [0, 100].

    Raises:
        ProbeFailure: If total is zero or negative
    """
    if total <= 0:
        raise ProbeFailure("Total is zero")
    return max(0.0, min(100.0, used / total * 100.0))
