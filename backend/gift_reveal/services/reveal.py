"""Gift rendering and the gift lifecycle.

``render_gift`` applies the unlock gate, then the secrecy gate, then loads
content and substitutes blocks the viewer may not see. Lifecycle helpers keep
a gift row and its content document in step, deleting the row again when the
first content write fails.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Iterable

from pydantic import ValidationError

from gift_reveal.core.config import settings
from gift_reveal.core.content_store import ContentStore
from gift_reveal.core.gift_cache import GiftRenderCache
from gift_reveal.core.gift_metrics import gift_metrics
from gift_reveal.core.schedule import (
    RevealState,
    gift_week,
    is_unlocked,
    is_visible,
    latest_open_gift,
    now_bucket,
    reveal_state,
)
from gift_reveal.models.models import Gift
from gift_reveal.schemas.gift import (
    Block,
    ContentDocument,
    GalleryPhoto,
    GiftCreate,
    GiftSummary,
    GiftUpdate,
    MemoryPhotoOut,
    RenderedGift,
    SecretBlock,
)
from gift_reveal.services.errors import ContentWriteError, GiftConflictError, InvalidGiftInputError
from gift_reveal.services.gift_store import GiftStore


logger = logging.getLogger("gift_reveal.reveal")

ACCESS_DENIED_MESSAGE = "Oops, only Lesya sees this content"
RESTRICTED_BLOCK_TYPE = "restricted"

# fields that may not be cleared through an update
_REQUIRED_FIELDS = {
    "number",
    "open_date",
    "english_description",
    "hint_image_url",
    "hint_text",
    "code_text",
    "is_secret",
}


def _placeholder(message: str | None = None) -> dict[str, Any]:
    return {"type": RESTRICTED_BLOCK_TYPE, "message": message or ACCESS_DENIED_MESSAGE}


def _dump_block(block: Block) -> dict[str, Any]:
    return block.model_dump(mode="json", exclude_none=True)


def render_blocks(blocks: Iterable[Block], state: RevealState, is_authenticated: bool) -> list[dict[str, Any]]:
    rendered: list[dict[str, Any]] = []
    for block in blocks:
        access_message = block.access_message if isinstance(block, SecretBlock) else None
        if state is RevealState.restricted:
            rendered.append(_placeholder(access_message))
        elif isinstance(block, SecretBlock) and not is_authenticated:
            rendered.append(_placeholder(access_message))
        else:
            rendered.append(_dump_block(block))
    return rendered


def assemble(gift: Gift, document: ContentDocument | None, now: datetime, is_authenticated: bool) -> RenderedGift:
    """Build the view model for one gift from already loaded content."""
    state = reveal_state(gift.open_date, gift.is_secret, now, is_authenticated)
    if state is RevealState.locked:
        return RenderedGift(id=gift.id, number=gift.number, open_date=gift.open_date, state=state)

    memory_photo = None
    if state is RevealState.full and gift.memory_photo is not None:
        memory_photo = MemoryPhotoOut.model_validate(gift.memory_photo)

    blocks: list[dict[str, Any]] = []
    metadata: dict[str, Any] = {}
    if document is not None:
        blocks = render_blocks(document.blocks, state, is_authenticated)
        if state is RevealState.full:
            metadata = document.metadata.model_dump(mode="json", exclude_none=True)

    return RenderedGift(
        id=gift.id,
        number=gift.number,
        open_date=gift.open_date,
        state=state,
        is_secret=gift.is_secret,
        title=gift.title,
        author=gift.author,
        nickname=gift.nickname,
        english_description=gift.english_description,
        hint_image_url=gift.hint_image_url,
        hint_text=gift.hint_text,
        code_text=gift.code_text,
        code=gift.code,
        blocks=blocks,
        metadata=metadata,
        memory_photo=memory_photo,
        content_missing=document is None,
    )


def _cacheable(open_date: datetime, bucket: int, ttl: int) -> bool:
    # only when the gift was already open at the start of the bucket
    return open_date.timestamp() <= bucket * max(1, int(ttl))


def gift_revision(gift: Gift) -> str:
    """Cache key component that changes on every admin edit of the gift."""
    stamp = gift.updated_at or gift.created_at
    return str(int(stamp.timestamp() * 1_000_000)) if stamp is not None else "0"


async def render_gift(
    store: GiftStore,
    contents: ContentStore,
    gift_id: str,
    now: datetime,
    is_authenticated: bool,
    cache: GiftRenderCache | None = None,
) -> RenderedGift | None:
    started = time.perf_counter()
    cached = False
    error = False
    try:
        gift = await store.find_by_id(gift_id)
        if gift is None:
            return None

        revision = gift_revision(gift)
        bucket = now_bucket(now, cache.ttl) if cache is not None else 0
        if cache is not None:
            hit = await cache.get_render(gift.id, revision, bucket, is_authenticated)
            if hit is not None:
                cached = True
                return RenderedGift.model_validate(hit)

        document = None
        if is_unlocked(gift.open_date, now):
            document = await contents.load_for_gift(gift.id, gift.content_path, gift.content_url)
        rendered = assemble(gift, document, now, is_authenticated)

        if cache is not None and rendered.state is not RevealState.locked and _cacheable(gift.open_date, bucket, cache.ttl):
            await cache.set_render(gift.id, revision, bucket, is_authenticated, rendered.model_dump(mode="json"))
        return rendered
    except Exception:
        error = True
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        gift_metrics.record_render(duration_ms, cached, error)
        if duration_ms > settings.gift_slow_ms:
            logger.warning("Slow gift render gift_id=%s duration_ms=%.1f cached=%s", gift_id, duration_ms, cached)


def _validate_create(payload: GiftCreate | dict[str, Any]) -> GiftCreate:
    if isinstance(payload, GiftCreate):
        return payload
    try:
        return GiftCreate.model_validate(payload)
    except ValidationError as exc:
        raise InvalidGiftInputError(exc.errors(include_url=False)) from exc


async def _save_content(contents: ContentStore, gift_id: str, document: ContentDocument) -> bool:
    started = time.perf_counter()
    try:
        saved = await asyncio.to_thread(contents.save_content, gift_id, document)
    except Exception:
        logger.exception("Content store raised gift_id=%s", gift_id)
        saved = False
    gift_metrics.record_content_write((time.perf_counter() - started) * 1000, error=not saved)
    return saved


async def create_gift(
    store: GiftStore,
    contents: ContentStore,
    payload: GiftCreate | dict[str, Any],
    cache: GiftRenderCache | None = None,
) -> Gift:
    data = _validate_create(payload)
    if await store.find_by_number(data.number) is not None:
        raise GiftConflictError(data.number)

    fields = data.model_dump(exclude={"content", "memory_photo"})
    fields["content_path"] = ""
    if data.memory_photo is not None:
        fields["memory_photo"] = data.memory_photo.model_dump()
    gift = await store.create(fields)
    gift_id = gift.id

    if not await _save_content(contents, gift_id, data.content or ContentDocument()):
        try:
            await store.delete(gift_id)
            await asyncio.to_thread(contents.delete_gift_dir, gift_id)
        except Exception:
            logger.exception("Compensating delete failed gift_id=%s", gift_id)
        raise ContentWriteError(gift_id)

    gift = await store.update(gift_id, {"content_path": gift_id})
    if cache is not None:
        await cache.invalidate_gift(gift_id)
    return gift


async def update_gift(
    store: GiftStore,
    contents: ContentStore,
    gift_id: str,
    payload: GiftUpdate,
    cache: GiftRenderCache | None = None,
) -> Gift | None:
    """Apply an admin edit; a rejected row write leaves the old content on disk."""
    gift = await store.find_by_id(gift_id)
    if gift is None:
        return None

    fields = payload.model_dump(exclude_unset=True, exclude={"content", "memory_photo", "remove_memory_photo"})
    fields = {k: v for k, v in fields.items() if not (k in _REQUIRED_FIELDS and v is None)}

    number = fields.get("number")
    if number is not None and number != gift.number:
        other = await store.find_by_number(number)
        if other is not None and other.id != gift.id:
            raise GiftConflictError(number)

    replaces_content = payload.content is not None
    previous: bytes | None = None
    if replaces_content:
        try:
            previous = await asyncio.to_thread(contents.snapshot_content, gift_id)
        except OSError as exc:
            logger.error("Content snapshot failed gift_id=%s error=%s", gift_id, exc)
            raise ContentWriteError(gift_id) from exc
        if not await _save_content(contents, gift_id, payload.content):
            raise ContentWriteError(gift_id)
        fields["content_path"] = gift_id

    if payload.remove_memory_photo:
        fields["memory_photo"] = None
    elif payload.memory_photo is not None:
        fields["memory_photo"] = payload.memory_photo.model_dump()

    try:
        updated = await store.update(gift_id, fields)
    except Exception:
        if replaces_content:
            await _restore_content(contents, gift_id, previous)
        raise
    if cache is not None:
        await cache.invalidate_gift(gift_id)
    return updated


async def _restore_content(contents: ContentStore, gift_id: str, previous: bytes | None) -> None:
    try:
        await asyncio.to_thread(contents.restore_content, gift_id, previous)
    except (OSError, ValueError):
        logger.exception("Content restore failed gift_id=%s", gift_id)


async def delete_gift(
    store: GiftStore,
    contents: ContentStore,
    gift_id: str,
    cache: GiftRenderCache | None = None,
) -> bool:
    if not await store.delete(gift_id):
        return False
    await asyncio.to_thread(contents.delete_gift_dir, gift_id)
    if cache is not None:
        await cache.invalidate_gift(gift_id)
    return True


async def load_admin_content(contents: ContentStore, gift: Gift) -> ContentDocument | None:
    return await contents.load_for_gift(gift.id, gift.content_path, gift.content_url)


async def list_gift_index(store: GiftStore, now: datetime) -> list[GiftSummary]:
    started = time.perf_counter()
    gifts = await store.list_all("number")
    summaries = [
        GiftSummary(
            id=gift.id,
            number=gift.number,
            open_date=gift.open_date,
            is_open=is_unlocked(gift.open_date, now),
            week=gift_week(gift.open_date, settings.word_start_date),
        )
        for gift in gifts
    ]
    gift_metrics.record_index((time.perf_counter() - started) * 1000, False, False)
    return summaries


async def find_latest_open(store: GiftStore, now: datetime) -> Gift | None:
    return latest_open_gift(await store.list_all("open_date"), now)


async def list_gallery(store: GiftStore, now: datetime, is_authenticated: bool) -> list[GalleryPhoto]:
    photos: list[GalleryPhoto] = []
    for gift in await store.list_all("number"):
        photo = gift.memory_photo
        if photo is None:
            continue
        is_open = is_unlocked(gift.open_date, now)
        item = GalleryPhoto(gift_id=gift.id, number=gift.number, open_date=gift.open_date, is_open=is_open)
        if is_open and is_visible(gift.is_secret, is_authenticated):
            item.nickname = gift.nickname
            item.photo_url = photo.photo_url
            item.photo_date = photo.photo_date
            item.text = photo.text
        photos.append(item)
    return photos
