from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=120)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, value: str) -> str:
        return value.strip()


class UserPublic(BaseModel):
    id: int
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}
