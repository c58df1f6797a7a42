"""Remaining-time math for deadline and session (fixed-duration) timers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from shared.models.payload import TimerPayload
from shared.models.timer import TimingMode, as_utc
from storefront.storage import KeyValueStore, session_start_key


@dataclass(frozen=True)
class Countdown:
    days: int
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_seconds(cls, total: float) -> Countdown:
        total = max(0, math.floor(total))
        return cls(
            days=total // 86400,
            hours=(total % 86400) // 3600,
            minutes=(total % 3600) // 60,
            seconds=total % 60,
        )

    def padded(self) -> dict[str, str]:
        return {
            "days": pad(self.days),
            "hours": pad(self.hours),
            "minutes": pad(self.minutes),
            "seconds": pad(self.seconds),
        }


def pad(n: int) -> str:
    return f"{n:02d}"


def deadline_remaining(end_date: datetime, now: datetime) -> int:
    """Whole seconds until *end_date*, never negative."""
    return max(0, math.floor((as_utc(end_date) - as_utc(now)).total_seconds()))


class SessionClock:
    """Per-browser start instants of fixed-duration timers.

    The start is written the first time a timer id is seen and reused on
    every later load; clearing the store restarts the countdown.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def started_at(self, timer_id: str, now: datetime) -> int:
        key = session_start_key(timer_id)
        stored = self.store.get(key)
        if stored is not None:
            try:
                return int(stored)
            except ValueError:
                pass
        started = math.floor(as_utc(now).timestamp())
        self.store.set(key, str(started))
        return started

    def remaining(self, timer_id: str, duration_minutes: int, now: datetime) -> int:
        elapsed = math.floor(as_utc(now).timestamp()) - self.started_at(timer_id, now)
        return max(0, duration_minutes * 60 - elapsed)


def remaining_seconds(timer: TimerPayload, now: datetime, clock: SessionClock) -> int:
    if timer.timer_type is TimingMode.DEADLINE and timer.end_date is not None:
        return deadline_remaining(timer.end_date, now)
    if timer.timer_type is TimingMode.SESSION:
        return clock.remaining(timer.id, timer.fixed_minutes or 0, now)
    return 0
