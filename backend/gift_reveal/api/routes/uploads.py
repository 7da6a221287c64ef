import asyncio
import io
import logging
import re
import time
from pathlib import Path
from typing import Literal

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status
from pydantic import BaseModel
from PIL import Image

from gift_reveal.api.deps import ContentStoreDep, CurrentUserDep, GiftCacheDep, GiftStoreDep
from gift_reveal.core.audit import AuditAction, audit_gift_action
from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.uploads")

router = APIRouter(prefix="/uploads", tags=["uploads"])


class UploadResponse(BaseModel):
    url: str
    file_name: str
    original_name: str
    size: int
    content_type: str
    width: int | None = None
    height: int | None = None


_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
_AUDIO_TYPES = {
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}
_IMAGE_FORMATS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}
_STEM_RE = re.compile(r"[^A-Za-z0-9_-]+")


def _validate_image(data: bytes) -> tuple[str, int, int]:
    """Extension, width and height of an uploaded image; 400 when it is not one."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        with Image.open(io.BytesIO(data)) as img:
            image_format, width, height = img.format, img.width, img.height
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is not a valid image.",
        )
    ext = _IMAGE_FORMATS.get((image_format or "").upper())
    if ext is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JPEG, PNG or WebP images are supported.",
        )
    return ext, int(width), int(height)


def _target_name(file_type: str, original_name: str, ext: str) -> tuple[str, str | None]:
    if file_type == "hint":
        return f"hint-image.{ext}", None
    if file_type == "memory":
        return f"memory-photo.{ext}", None
    stem = _STEM_RE.sub("-", Path(original_name).stem).strip("-") or "file"
    return f"{stem[:60]}_{int(time.time() * 1000)}.{ext}", "blocks"


@router.post("", response_model=UploadResponse)
async def upload_gift_file(
    request: Request,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    cache: GiftCacheDep,
    current_user: CurrentUserDep,
    file: UploadFile = File(...),
    gift_id: str = Form(...),
    file_type: Literal["hint", "memory", "block"] = Form("block"),
) -> UploadResponse:
    gift = await store.find_by_id(gift_id)
    if gift is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift not found")

    content_type = (file.content_type or "").lower()
    if content_type not in _IMAGE_TYPES and content_type not in _AUDIO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JPEG, PNG, WebP images or audio files are supported.",
        )
    if file_type != "block" and content_type not in _IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Hint and memory uploads must be images.",
        )

    max_bytes = int(settings.upload_max_mb) * 1024 * 1024
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File must not exceed {settings.upload_max_mb} MB.",
        )

    width = height = None
    if content_type in _IMAGE_TYPES:
        ext, width, height = _validate_image(data)
    else:
        ext = _AUDIO_TYPES[content_type]

    original_name = file.filename or "upload"
    file_name, subfolder = _target_name(file_type, original_name, ext)
    try:
        url = await asyncio.to_thread(contents.save_gift_file, gift.id, file_name, data, subfolder)
    except OSError as exc:
        logger.error("Upload save failed gift_id=%s name=%s error=%s", gift.id, file_name, exc)
        raise HTTPException(status_code=500, detail="Failed to save file")

    if file_type == "hint":
        await store.update(gift.id, {"hint_image_url": url})
    await cache.invalidate_gift(gift.id)

    audit_gift_action(
        AuditAction.GIFT_UPLOAD,
        request,
        current_user.id,
        gift.id,
        {"file_type": file_type, "file_name": file_name, "size": len(data)},
    )
    logger.info("Upload stored gift_id=%s file_type=%s url=%s", gift.id, file_type, url)
    return UploadResponse(
        url=url,
        file_name=file_name,
        original_name=original_name,
        size=len(data),
        content_type=content_type,
        width=width,
        height=height,
    )
