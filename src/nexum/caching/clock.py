"""Wall clock and block-boundary helpers used by cache expirations."""

from __future__ import annotations

import time
from typing import Protocol


ROUND_DURATION_SECONDS = 6


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Integer unix seconds."""

    def now(self) -> int:
        return int(time.time())


def last_second_of_block(now: int, round_duration: int = ROUND_DURATION_SECONDS) -> int:
    """
    Last second that still belongs to the block after ``now``.

    With 6-second rounds starting at multiples of 6, a value stored at 0..4
    expires after 5, and a value stored at 5 expires after 11.
    """
    ts = now + 1
    while ts % round_duration != round_duration - 1:
        ts += 1
    return ts


def seconds_until_next_block(now_seconds: float, round_duration: int = ROUND_DURATION_SECONDS) -> float:
    return round_duration - (now_seconds % round_duration)
