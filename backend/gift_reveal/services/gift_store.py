import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gift_reveal.models.models import Gift, MemoryPhoto, utcnow
from gift_reveal.services.errors import GiftConflictError


logger = logging.getLogger("gift_reveal.gift_store")

_ORDERINGS = {
    "number": (Gift.number.asc(),),
    "open_date": (Gift.open_date.asc(), Gift.number.asc()),
    "-open_date": (Gift.open_date.desc(), Gift.number.desc()),
}

_GIFT_FIELDS = {
    "number",
    "title",
    "author",
    "nickname",
    "open_date",
    "english_description",
    "hint_image_url",
    "hint_text",
    "code_text",
    "is_secret",
    "code",
    "content_path",
    "content_url",
}


class GiftStore:
    """Keyed persistence for gifts; ``number`` stays unique across the table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, gift_id: str) -> Gift | None:
        result = await self.session.execute(select(Gift).where(Gift.id == gift_id))
        return result.scalar_one_or_none()

    async def find_by_number(self, number: int) -> Gift | None:
        result = await self.session.execute(select(Gift).where(Gift.number == number))
        return result.scalar_one_or_none()

    async def list_all(self, order_by: str = "number") -> list[Gift]:
        ordering = _ORDERINGS.get(order_by)
        if ordering is None:
            raise ValueError(f"unsupported ordering {order_by!r}")
        result = await self.session.execute(select(Gift).order_by(*ordering))
        return list(result.scalars().all())

    async def create(self, fields: dict[str, Any]) -> Gift:
        number = fields["number"]
        if await self.find_by_number(number) is not None:
            raise GiftConflictError(number)

        gift = Gift(**{k: v for k, v in fields.items() if k in _GIFT_FIELDS}, memory_photo=None)
        photo = fields.get("memory_photo")
        if photo:
            gift.memory_photo = MemoryPhoto(**photo)
        self.session.add(gift)
        await self._commit(number)
        logger.info("Gift created id=%s number=%s", gift.id, gift.number)
        return gift

    async def update(self, gift_id: str, fields: dict[str, Any]) -> Gift | None:
        gift = await self.find_by_id(gift_id)
        if gift is None:
            return None

        number = fields.get("number")
        if number is not None and number != gift.number:
            other = await self.find_by_number(number)
            if other is not None and other.id != gift.id:
                raise GiftConflictError(number)

        for key, value in fields.items():
            if key in _GIFT_FIELDS:
                setattr(gift, key, value)
        if "memory_photo" in fields:
            self._apply_memory_photo(gift, fields["memory_photo"])
        # memory photo and same-value edits do not trigger onupdate
        gift.updated_at = utcnow()

        await self._commit(number if number is not None else gift.number)
        return gift

    async def delete(self, gift_id: str) -> bool:
        gift = await self.find_by_id(gift_id)
        if gift is None:
            return False
        await self.session.delete(gift)
        await self.session.commit()
        logger.info("Gift deleted id=%s number=%s", gift_id, gift.number)
        return True

    def _apply_memory_photo(self, gift: Gift, photo: dict[str, Any] | None) -> None:
        if photo is None:
            gift.memory_photo = None
            return
        if gift.memory_photo is None:
            gift.memory_photo = MemoryPhoto(**photo)
            return
        for key, value in photo.items():
            setattr(gift.memory_photo, key, value)

    async def _commit(self, number: int) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Gift write rejected number=%s error=%s", number, exc.orig)
            raise GiftConflictError(number) from exc
