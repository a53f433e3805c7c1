"""Calendar-day windows and timestamp parsing.

All arithmetic happens on epoch milliseconds. Day boundaries are computed
in local time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .records import number_or_none

# Values above this are treated as epoch milliseconds, below as seconds
_EPOCH_MS_THRESHOLD = 100_000_000_000

# fromisoformat before 3.11 only accepts 3 or 6 fractional digits
_FRACTION_RE = re.compile(r"(\.\d+)")


@dataclass(frozen=True)
class DayWindow:
    """Inclusive ``[start_ms, end_ms]`` bounds of one local calendar day."""

    date: str
    start_ms: int
    end_ms: int

    def contains(self, ts: int | None) -> bool:
        return ts is not None and self.start_ms <= ts <= self.end_ms

    def clip(self, ts: int) -> int:
        return max(self.start_ms, min(self.end_ms, ts))


def day_window(date: str) -> DayWindow:
    """Build the local-time window for a ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If ``date`` is not a valid calendar date.
    """
    day = datetime.strptime(date, "%Y-%m-%d")
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end = day.replace(hour=23, minute=59, second=59, microsecond=999_000)
    return DayWindow(
        date=date,
        start_ms=round(start.timestamp() * 1000),
        end_ms=round(end.timestamp() * 1000),
    )


def _normalize_fraction(match: re.Match) -> str:
    digits = match.group(1)[1:]
    return "." + (digits + "000000")[:6]


def parse_timestamp_ms(value: Any) -> int | None:
    """Parse an ISO-8601 string or epoch number into epoch milliseconds.

    Naive ISO strings are read as local time. Returns None for anything
    unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        numeric = number_or_none(text)
        if numeric is not None:
            return _epoch_to_ms(numeric)
        text = text.replace("Z", "+00:00").replace("z", "+00:00")
        text = _FRACTION_RE.sub(_normalize_fraction, text, count=1)
        try:
            dt = datetime.fromisoformat(text)
            if dt.tzinfo is None:
                dt = dt.astimezone()
            return round(dt.timestamp() * 1000)
        except (ValueError, OverflowError, OSError):
            # Out-of-range years fail here rather than in fromisoformat
            return None
    numeric = number_or_none(value)
    if numeric is None:
        return None
    return _epoch_to_ms(numeric)


def _epoch_to_ms(value: float) -> int:
    if abs(value) >= _EPOCH_MS_THRESHOLD:
        return round(value)
    return round(value * 1000)


def ms_to_datetime(ms: int) -> datetime:
    """Timezone-aware local datetime for an epoch-millisecond value."""
    return datetime.fromtimestamp(ms / 1000).astimezone()
