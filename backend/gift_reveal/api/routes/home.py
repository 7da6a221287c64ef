from datetime import datetime

from fastapi import APIRouter

from gift_reveal.api.deps import ClockDep, GiftStoreDep
from gift_reveal.core.config import settings
from gift_reveal.core.schedule import local_date, time_remaining, word_for_date
from gift_reveal.data.words import DAILY_WORDS
from gift_reveal.schemas.home import CountdownOut, HomeResponse, WordOfDayOut
from gift_reveal.services import reveal


router = APIRouter(prefix="/home", tags=["home"])


def _word_of_day(now: datetime) -> WordOfDayOut:
    word = word_for_date(
        settings.word_start_date,
        settings.word_cycle_length,
        now,
        DAILY_WORDS,
        birthday_date=settings.birthday_date,
        tz=settings.reveal_timezone,
        birthday_word=settings.birthday_word,
    )
    today = local_date(now, settings.reveal_timezone)
    return WordOfDayOut(word=word, date=today.isoformat(), is_birthday=today == settings.birthday_date)


def _countdown(now: datetime) -> CountdownOut:
    remaining = time_remaining(now, settings.birthday_date, settings.reveal_timezone)
    return CountdownOut(
        days=remaining.days,
        hours=remaining.hours,
        minutes=remaining.minutes,
        seconds=remaining.seconds,
        target_date=settings.birthday_date.isoformat(),
        finished=remaining.finished,
    )


@router.get("", response_model=HomeResponse)
async def home(store: GiftStoreDep, clock: ClockDep) -> HomeResponse:
    now = clock.now()
    latest = await reveal.find_latest_open(store, now)
    return HomeResponse(
        now=now,
        word=_word_of_day(now),
        countdown=_countdown(now),
        latest_gift_id=latest.id if latest else None,
    )


@router.get("/word-of-day", response_model=WordOfDayOut)
async def word_of_day(clock: ClockDep) -> WordOfDayOut:
    return _word_of_day(clock.now())


@router.get("/countdown", response_model=CountdownOut)
async def countdown(clock: ClockDep) -> CountdownOut:
    return _countdown(clock.now())
