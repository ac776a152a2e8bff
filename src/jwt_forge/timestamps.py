"""Resolution of flexible time inputs into epoch seconds.

Accepted inputs:

* ``datetime`` instances (naive values are interpreted by ``datetime.timestamp``);
* numbers: epoch milliseconds, epoch seconds, or a small relative offset in
  seconds, told apart by magnitude;
* duration strings such as ``"15m"``, ``"1.5h"``, ``"-1s"`` or ``"2 d"``.

Numbers below ``RELATIVE_SECONDS_LIMIT`` (about the year 2000 as epoch seconds)
are read as offsets from now, so an absolute timestamp before that date cannot
be expressed as a plain number. Pass a ``datetime`` for those.
"""

from __future__ import annotations

import math
import re
import time
from datetime import datetime
from typing import Union

TimestampInput = Union[datetime, int, float, str]

RELATIVE_SECONDS_LIMIT = 946080000
EPOCH_MILLISECONDS_LIMIT = 946080000000

UNIT_SECONDS: dict[str, float] = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "y": 365 * 24 * 60 * 60,
}

_DURATION_RE = re.compile(
    r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?)\s*(ms|s|m|h|d|w|y)\s*$",
    re.IGNORECASE,
)


def parse_duration(text: str) -> float:
    """Return the number of seconds a duration string such as ``"1.5h"`` stands for."""
    match = _DURATION_RE.match(text)
    if not match:
        raise ValueError(f"invalid duration: {text!r} (expected e.g. '30s', '15m', '1h', '7d')")
    amount, unit = match.groups()
    return float(amount) * UNIT_SECONDS[unit.lower()]


def resolve_timestamp(value: TimestampInput, *, now: float | None = None) -> int:
    current = time.time() if now is None else float(now)

    if isinstance(value, datetime):
        return math.floor(value.timestamp())
    if isinstance(value, bool):
        raise ValueError("booleans are not timestamps")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError("timestamp must be finite")
        if value >= EPOCH_MILLISECONDS_LIMIT:
            return math.floor(value / 1000)
        if value >= RELATIVE_SECONDS_LIMIT:
            return math.floor(value)
        return math.floor(current) + math.floor(value)
    if isinstance(value, str):
        return math.floor(current + parse_duration(value))
    raise ValueError(f"unsupported timestamp input: {type(value).__name__}")
