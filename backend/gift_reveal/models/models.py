from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from gift_reveal.db.session import Base


DEFAULT_HINT_TEXT = "look for a gift with this sticker"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores UTC and always hands back aware datetimes (sqlite drops tzinfo)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(120), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class Gift(Base):
    __tablename__ = "gifts"
    __table_args__ = (CheckConstraint("number > 0", name="ck_gifts_number_positive"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: uuid4().hex)
    number: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    open_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    english_description: Mapped[str] = mapped_column(Text, nullable=False)
    hint_image_url: Mapped[str] = mapped_column(String(2048), default="")
    hint_text: Mapped[str] = mapped_column(String(512), default=DEFAULT_HINT_TEXT)
    code_text: Mapped[str] = mapped_column(String(512), default="")
    is_secret: Mapped[bool] = mapped_column(Boolean, default=False)
    code: Mapped[str | None] = mapped_column(String(512), nullable=True)
    content_path: Mapped[str] = mapped_column(String(512), default="")
    content_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    memory_photo: Mapped["MemoryPhoto | None"] = relationship(
        back_populates="gift",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class MemoryPhoto(Base):
    __tablename__ = "memory_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    gift_id: Mapped[str] = mapped_column(
        ForeignKey("gifts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    photo_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    photo_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)

    gift: Mapped[Gift] = relationship(back_populates="memory_photo")
