from datetime import datetime

from pydantic import BaseModel, Field


class CountdownOut(BaseModel):
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    target_date: str
    finished: bool = False

    model_config = {"from_attributes": True}


class WordOfDayOut(BaseModel):
    word: str
    date: str
    is_birthday: bool = False


class HomeResponse(BaseModel):
    now: datetime
    word: WordOfDayOut
    countdown: CountdownOut
    latest_gift_id: str | None = None


class ClockStateOut(BaseModel):
    mode: str
    now: datetime
    overridden_at: datetime | None = None

    model_config = {"from_attributes": True}


class ClockOverrideRequest(BaseModel):
    at: datetime


class ClockStepRequest(BaseModel):
    seconds: float = Field(ge=-366 * 24 * 3600, le=366 * 24 * 3600)


class DecryptRequest(BaseModel):
    encrypted_text: str = Field(max_length=20000)
    key: str | None = Field(default=None, max_length=512)


class DecryptResponse(BaseModel):
    text: str
