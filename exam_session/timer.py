"""
Countdown for timed exams.

The countdown is computed from the session's `started_at`, not from the number
of ticks seen, so a session reloaded mid-exam resumes with the right remaining
time. The timer itself owns no thread; `ExamRunner` feeds it ticks.
"""
import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from engine import URGENCY_HIGH_ABOVE, URGENCY_LOW_ABOVE, URGENCY_MEDIUM_ABOVE

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    INACTIVE = "inactive"
    RUNNING = "running"
    EXPIRED = "expired"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def remaining_seconds(started_at: datetime, time_limit_minutes: int, now: datetime) -> int:
    """Whole seconds left before the deadline, never negative."""
    deadline = started_at + timedelta(minutes=time_limit_minutes)
    return max(0, math.floor((deadline - now).total_seconds()))


def urgency_for(remaining: int, limit_seconds: int) -> Urgency:
    percent = remaining / limit_seconds * 100
    if percent > URGENCY_LOW_ABOVE:
        return Urgency.LOW
    if percent > URGENCY_MEDIUM_ABOVE:
        return Urgency.MEDIUM
    if percent > URGENCY_HIGH_ABOVE:
        return Urgency.HIGH
    return Urgency.CRITICAL


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


class ExamTimer:
    """
    inactive -> running -> expired.

    Practice sessions (no time limit) stay inactive for good. `tick()` returns
    True exactly once: on the tick that takes the countdown to zero.
    """

    def __init__(self, started_at: datetime, time_limit_minutes: Optional[int]):
        self.started_at = started_at
        self.time_limit_minutes = time_limit_minutes
        self.state = TimerState.INACTIVE
        self._remaining: Optional[int] = None
        self._stopped = False

    @property
    def is_timed(self) -> bool:
        return self.time_limit_minutes is not None

    @property
    def limit_seconds(self) -> Optional[int]:
        return self.time_limit_minutes * 60 if self.is_timed else None

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self.state == TimerState.EXPIRED

    @property
    def urgency(self) -> Optional[Urgency]:
        if not self.is_timed or self._remaining is None:
            return None
        return urgency_for(self._remaining, self.limit_seconds)

    def start(self) -> None:
        if not self.is_timed or self.state != TimerState.INACTIVE or self._stopped:
            return
        self.state = TimerState.RUNNING
        logger.info(f"Timer running: {self.time_limit_minutes} min from {self.started_at.isoformat()}")

    def tick(self, now: datetime) -> bool:
        """Recompute remaining time. Returns True on the transition to expired."""
        if self.state != TimerState.RUNNING or self._stopped:
            return False
        current = remaining_seconds(self.started_at, self.time_limit_minutes, now)
        if self._remaining is not None:
            # a clock step backwards must not add time
            current = min(current, self._remaining)
        self._remaining = current
        if current == 0:
            self.state = TimerState.EXPIRED
            logger.info("Timer expired")
            return True
        return False

    def stop(self) -> None:
        """No tick has any effect after this."""
        self._stopped = True

    def remaining_at(self, now: datetime) -> Optional[int]:
        """Remaining seconds at an arbitrary instant, bounded by the last tick."""
        if not self.is_timed:
            return None
        current = remaining_seconds(self.started_at, self.time_limit_minutes, now)
        if self._remaining is not None:
            current = min(current, self._remaining)
        return current
