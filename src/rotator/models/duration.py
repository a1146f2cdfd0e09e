"""
Duration parsing for rotation declarations.

Accepts compact duration strings such as "30d", "12h", "1d12h", "90m",
"2w" or "45s", plain integers (seconds) and timedelta values.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

_COMPONENT = re.compile(r"(\d+)\s*([smhdw])", re.I)
_FULL = re.compile(r"^(\s*\d+\s*[smhdw]\s*)+$", re.I)


def parse_duration(value: Any) -> timedelta:
    """
    Parse a duration value.

    Args:
        value: Duration string ("30d", "1d12h"), integer seconds,
            or a timedelta

    Returns:
        Parsed timedelta

    Raises:
        ValueError: If the value cannot be interpreted as a duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        return timedelta(seconds=value)

    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    expr = value.strip()
    if expr.isdigit():
        return timedelta(seconds=int(expr))

    if not _FULL.match(expr):
        raise ValueError(f"Invalid duration: {value!r}")

    seconds = 0
    for amount, unit in _COMPONENT.findall(expr):
        seconds += int(amount) * _UNIT_SECONDS[unit.lower()]
    return timedelta(seconds=seconds)


def format_duration(value: timedelta) -> str:
    """Render a timedelta in the compact form accepted by parse_duration."""
    total = int(value.total_seconds())
    if total == 0:
        return "0s"

    parts = []
    for unit in ("d", "h", "m", "s"):
        size = _UNIT_SECONDS[unit]
        amount, total = divmod(total, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return "".join(parts)
