"""Human-readable formatting for byte counts and bit rates."""

from __future__ import annotations

import re

_BYTE_UNITS = ["B", "KB", "MB", "GB", "TB"]
_RATE_UNITS = ["bps", "Kbps", "Mbps", "Gbps"]
_BANDWIDTH_RE = re.compile(r"(\d+\.?\d*)([KMG]?)", re.IGNORECASE)
_MULTIPLIERS = {"": 1, "K": 1_000, "M": 1_000_000, "G": 1_000_000_000}


def _scaled(value: float, base: int, units: list[str]) -> str:
    if value <= 0:
        return f"0 {units[0]}"
    exponent = 0
    while exponent < len(units) - 1 and value >= base ** (exponent + 1):
        exponent += 1
    number = f"{value / base ** exponent:.2f}".rstrip("0").rstrip(".")
    return f"{number} {units[exponent]}"


def format_bytes(num_bytes: float) -> str:
    """Format a byte count with binary (1024) prefixes, e.g. ``1.5 KB``."""
    return _scaled(num_bytes, 1024, _BYTE_UNITS)


def format_bps(bps: float) -> str:
    """Format a bit rate with decimal (1000) prefixes, e.g. ``4 Kbps``."""
    return _scaled(bps, 1000, _RATE_UNITS)


def parse_bandwidth(value: str | None) -> int:
    """
    Parse a RouterOS rate string such as ``10M`` or ``512k`` into bits/second.

    Unparseable input yields 0.
    """
    if not value:
        return 0
    match = _BANDWIDTH_RE.search(value)
    if not match:
        return 0
    number = float(match.group(1))
    return int(round(number * _MULTIPLIERS[match.group(2).upper()]))
