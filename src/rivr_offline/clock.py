"""Epoch-millisecond time helpers.

The cache tables store ``cached_at`` / ``expires_at`` as integer epoch
milliseconds. Components take a ``Clock`` so tests can pin "now".
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], int]

MS_PER_SECOND = 1000
MS_PER_HOUR = 60 * 60 * MS_PER_SECOND
MS_PER_DAY = 24 * MS_PER_HOUR


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / MS_PER_SECOND, tz=UTC)


def to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * MS_PER_SECOND)


class FrozenClock:
    """A settable clock, mostly for tests and dry runs."""

    def __init__(self, now_ms: int) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms
