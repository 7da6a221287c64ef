"""Clock sources for reveal decisions.

Routes never call ``datetime.now`` directly. They receive a ``Clock`` through the
``get_clock`` dependency so tests and demos can pin time without touching
module state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol

from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.clock")

MODE_LIVE = "live"
MODE_OVERRIDDEN = "overridden"


class Clock(Protocol):
    def now(self) -> datetime: ...


def ensure_aware(value: datetime, tz: timezone | None = None) -> datetime:
    """Attach the reveal zone to naive datetimes and normalise to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or settings.reveal_timezone)
    return value.astimezone(timezone.utc)


def start_of_day(day: date, tz: timezone | None = None) -> datetime:
    """Midnight of ``day`` at the reveal offset, expressed in UTC."""
    local = datetime.combine(day, time.min, tzinfo=tz or settings.reveal_timezone)
    return local.astimezone(timezone.utc)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Always returns the same instant."""

    def __init__(self, at: datetime) -> None:
        self._at = ensure_aware(at)

    def now(self) -> datetime:
        return self._at


@dataclass(frozen=True)
class ClockState:
    mode: str
    now: datetime
    overridden_at: datetime | None


class OverridableClock:
    """Live wall clock that an operator can pin to a fixed instant.

    ``override`` enters overridden mode, ``step`` moves the pinned instant and
    ``clear`` drops back to the live source. In live mode every call reads the
    source again; nothing is accumulated between calls.
    """

    def __init__(self, source: Clock | None = None) -> None:
        self._source: Clock = source or SystemClock()
        self._overridden_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def is_overridden(self) -> bool:
        return self._overridden_at is not None

    def now(self) -> datetime:
        pinned = self._overridden_at
        if pinned is not None:
            return pinned
        return self._source.now()

    def override(self, at: datetime) -> datetime:
        pinned = ensure_aware(at)
        with self._lock:
            self._overridden_at = pinned
        logger.info("Clock overridden at=%s", pinned.isoformat())
        return pinned

    def step(self, delta: timedelta) -> datetime:
        with self._lock:
            base = self._overridden_at if self._overridden_at is not None else self._source.now()
            self._overridden_at = base + delta
            pinned = self._overridden_at
        logger.info("Clock stepped delta_s=%s at=%s", delta.total_seconds(), pinned.isoformat())
        return pinned

    def clear(self) -> None:
        with self._lock:
            self._overridden_at = None
        logger.info("Clock override cleared, back to live time")

    def state(self) -> ClockState:
        pinned = self._overridden_at
        if pinned is not None:
            return ClockState(mode=MODE_OVERRIDDEN, now=pinned, overridden_at=pinned)
        return ClockState(mode=MODE_LIVE, now=self._source.now(), overridden_at=None)


reveal_clock = OverridableClock()


def get_clock() -> Clock:
    return reveal_clock


def get_overridable_clock() -> OverridableClock:
    return reveal_clock
