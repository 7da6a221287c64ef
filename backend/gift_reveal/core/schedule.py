"""Date gates for gifts, the word of the day and the birthday countdown.

Everything here is pure: the current instant is always passed in, and every
calendar decision happens at the fixed reveal offset so all viewers share a
single reveal instant.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Protocol, Sequence, TypeVar

from gift_reveal.core.clock import ensure_aware, start_of_day
from gift_reveal.core.config import settings


_SECONDS_PER_DAY = 24 * 60 * 60


class RevealState(str, enum.Enum):
    locked = "locked"
    restricted = "restricted"
    full = "full"


@dataclass(frozen=True)
class Countdown:
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def finished(self) -> bool:
        return not (self.days or self.hours or self.minutes or self.seconds)


class _Dated(Protocol):
    open_date: datetime


GiftT = TypeVar("GiftT", bound=_Dated)


def to_reveal_datetime(value: datetime | date, tz: timezone | None = None) -> datetime:
    """Interpret date-only or naive input in the reveal zone, return aware UTC."""
    if isinstance(value, datetime):
        return ensure_aware(value, tz)
    return start_of_day(value, tz)


def local_date(value: datetime, tz: timezone | None = None) -> date:
    return ensure_aware(value).astimezone(tz or settings.reveal_timezone).date()


def is_unlocked(open_date: datetime, now: datetime) -> bool:
    return ensure_aware(now) >= ensure_aware(open_date)


def is_visible(is_secret: bool, is_authenticated: bool) -> bool:
    return not is_secret or is_authenticated


def reveal_state(open_date: datetime, is_secret: bool, now: datetime, is_authenticated: bool) -> RevealState:
    if not is_unlocked(open_date, now):
        return RevealState.locked
    if not is_visible(is_secret, is_authenticated):
        return RevealState.restricted
    return RevealState.full


def word_for_date(
    start_date: date,
    cycle_length: int,
    current: datetime,
    word_table: Sequence[str],
    birthday_date: date | None = None,
    tz: timezone | None = None,
    birthday_word: str | None = None,
) -> str:
    zone = tz or settings.reveal_timezone
    if birthday_date is not None and local_date(current, zone) == birthday_date:
        return birthday_word or settings.birthday_word
    if not word_table:
        return ""
    elapsed = ensure_aware(current) - start_of_day(start_date, zone)
    days = int(elapsed.total_seconds() // _SECONDS_PER_DAY)
    if days < 0 or cycle_length <= 0:
        return word_table[0]
    index = days % cycle_length
    if index >= len(word_table):
        return word_table[0]
    return word_table[index]


def time_remaining(now: datetime, target_date: date, tz: timezone | None = None) -> Countdown:
    target = start_of_day(target_date, tz)
    remaining = int((target - ensure_aware(now)).total_seconds())
    if remaining <= 0:
        return Countdown()
    days, rest = divmod(remaining, _SECONDS_PER_DAY)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return Countdown(days=days, hours=hours, minutes=minutes, seconds=seconds)


def gift_week(open_date: datetime, start_date: date, tz: timezone | None = None) -> int | None:
    """Zero-based week of the campaign the gift opens in, None before the start."""
    days = (local_date(open_date, tz) - start_date).days
    if days < 0:
        return None
    return days // 7


def latest_open_gift(gifts: Iterable[GiftT], now: datetime) -> GiftT | None:
    latest: GiftT | None = None
    for gift in gifts:
        if not is_unlocked(gift.open_date, now):
            continue
        if latest is None or ensure_aware(gift.open_date) >= ensure_aware(latest.open_date):
            latest = gift
    return latest


def now_bucket(now: datetime, width_seconds: int) -> int:
    width = max(1, int(width_seconds))
    return int(ensure_aware(now).timestamp() // width)
