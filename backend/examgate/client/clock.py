"""
Exam countdown derived from an absolute start instant.

Remaining time is never kept as a decrementing counter: every tick recomputes
it from ``started_at``, so a reload, a throttled background tab or a sleeping
laptop cannot reset or stretch the exam.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import DRIFT_TOLERANCE_SECONDS

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def remaining_seconds(now: datetime, started_at: Optional[datetime], duration_minutes: float) -> int:
    """Whole seconds left, never negative. Total: a missing or future start counts as no time used."""
    total = max(0, int(round(float(duration_minutes or 0) * 60)))
    if started_at is None:
        return total
    elapsed = (_as_utc(now) - _as_utc(started_at)).total_seconds()
    if elapsed <= 0:
        return total
    return max(0, total - math.floor(elapsed))


@dataclass(frozen=True)
class ClockTick:
    remaining: int
    # True on exactly one tick: the one where remaining first reaches 0
    expired: bool = False
    # the recomputed value disagreed with a plain one-second decrement
    corrected: bool = False


class SessionClock:
    def __init__(
        self,
        started_at: datetime,
        duration_minutes: float,
        now: Callable[[], datetime] = utc_now,
        tolerance: int = DRIFT_TOLERANCE_SECONDS,
    ) -> None:
        self.started_at = _as_utc(started_at)
        self.duration_minutes = duration_minutes
        self._now = now
        self._tolerance = tolerance
        self._last: Optional[int] = None
        self._expiry_fired = False

    @property
    def total_seconds(self) -> int:
        return remaining_seconds(self.started_at, self.started_at, self.duration_minutes)

    @property
    def expiry_fired(self) -> bool:
        return self._expiry_fired

    def remaining(self) -> int:
        value = remaining_seconds(self._now(), self.started_at, self.duration_minutes)
        # a wall clock stepped backwards must not hand time back
        if self._last is not None:
            value = min(value, self._last)
        return value

    def elapsed_minutes(self) -> float:
        return round((self.total_seconds - self.remaining()) / 60, 2)

    def tick(self) -> ClockTick:
        value = self.remaining()
        corrected = False
        if self._last is not None:
            expected = max(0, self._last - 1)
            if abs(value - expected) > self._tolerance:
                corrected = True
                logger.info("Timer correction: expected %ss, recomputed %ss", expected, value)
        self._last = value

        expired = False
        if value == 0 and not self._expiry_fired:
            self._expiry_fired = True
            expired = True
        return ClockTick(remaining=value, expired=expired, corrected=corrected)
