"""Filesystem storage for gift content documents and media.

Layout: ``<media_root>/gifts/<gift_id>/content.json`` plus uploaded files in the
same directory. A gift may instead point at an external JSON blob through
``content_url``; that blob wins over the local file when both exist.
"""

import asyncio
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from gift_reveal.core.config import settings
from gift_reveal.schemas.gift import ContentDocument


logger = logging.getLogger("gift_reveal.content")

CONTENT_FILENAME = "content.json"
GIFTS_DIRNAME = "gifts"
REMOTE_TIMEOUT_S = 10.0
REMOTE_MAX_BYTES = 2 * 1024 * 1024

_BACKEND_DIR = Path(__file__).resolve().parents[2]


def get_media_root() -> Path:
    root = Path(settings.media_root)
    return root if root.is_absolute() else _BACKEND_DIR / root


def get_gifts_root() -> Path:
    return get_media_root() / GIFTS_DIRNAME


def ensure_media_dirs() -> Path:
    gifts_root = get_gifts_root()
    gifts_root.mkdir(parents=True, exist_ok=True)
    logger.info("Media root ready path=%s", gifts_root)
    return gifts_root


def media_url(*parts: str) -> str:
    """Public URL of a file below the media root, served by the static mount."""
    rel = "/".join(part.strip("/") for part in parts if part and part.strip("/"))
    return f"{settings.backend_url.rstrip('/')}{settings.media_path.rstrip('/')}/{rel}"


class ContentStore:
    def __init__(self, root: Path | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._root = Path(root) if root is not None else None
        self._transport = transport

    @property
    def root(self) -> Path:
        return self._root if self._root is not None else get_gifts_root()

    def gift_dir(self, gift_id: str) -> Path:
        safe_id = Path(str(gift_id)).name
        if not safe_id or safe_id in {".", ".."}:
            raise ValueError(f"invalid gift id {gift_id!r}")
        return self.root / safe_id

    def _resolve(self, ref: str) -> Path | None:
        """Map a gift id or a stored content path onto a file under the root."""
        ref = (ref or "").strip().strip("/")
        if not ref:
            return None
        if ref.startswith(f"{GIFTS_DIRNAME}/"):
            ref = ref[len(GIFTS_DIRNAME) + 1:]
        candidate = (self.root / ref).resolve()
        root = self.root.resolve()
        if root != candidate and root not in candidate.parents:
            logger.warning("Content path escapes media root ref=%s", ref)
            return None
        if candidate.suffix != ".json":
            candidate = candidate / CONTENT_FILENAME
        return candidate

    def load_content(self, ref: str) -> ContentDocument | None:
        path = self._resolve(ref)
        if path is None or not path.is_file():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return ContentDocument.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Content unreadable path=%s error=%s", path, exc)
            return None

    @staticmethod
    def _write_atomic(target: Path, payload: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".content-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def save_content(self, gift_id: str, document: ContentDocument) -> bool:
        try:
            payload = json.dumps(
                document.model_dump(mode="json", exclude_none=True),
                ensure_ascii=False,
                indent=2,
            )
            self._write_atomic(self.gift_dir(gift_id) / CONTENT_FILENAME, payload.encode("utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Content save failed gift_id=%s error=%s", gift_id, exc)
            return False
        logger.info("Content saved gift_id=%s blocks=%s", gift_id, len(document.blocks))
        return True

    def snapshot_content(self, gift_id: str) -> bytes | None:
        """Raw bytes of the stored document, None when the gift has none."""
        try:
            return (self.gift_dir(gift_id) / CONTENT_FILENAME).read_bytes()
        except FileNotFoundError:
            return None

    def restore_content(self, gift_id: str, snapshot: bytes | None) -> None:
        """Put back what ``snapshot_content`` returned; raises OSError on failure."""
        target = self.gift_dir(gift_id) / CONTENT_FILENAME
        if snapshot is None:
            target.unlink(missing_ok=True)
        else:
            self._write_atomic(target, snapshot)
        logger.info("Content restored gift_id=%s existed=%s", gift_id, snapshot is not None)

    def delete_gift_dir(self, gift_id: str) -> bool:
        try:
            target_dir = self.gift_dir(gift_id)
        except ValueError:
            return False
        if not target_dir.exists():
            return False
        shutil.rmtree(target_dir, ignore_errors=True)
        logger.info("Content dir removed gift_id=%s", gift_id)
        return True

    def save_gift_file(self, gift_id: str, filename: str, data: bytes, subfolder: str | None = None) -> str:
        """Write an uploaded file next to the gift content and return its public URL."""
        target_dir = self.gift_dir(gift_id)
        if subfolder:
            target_dir = target_dir / Path(subfolder).name
        target_dir.mkdir(parents=True, exist_ok=True)
        name = Path(filename).name
        (target_dir / name).write_bytes(data)
        return media_url(GIFTS_DIRNAME, target_dir.relative_to(self.root).as_posix(), name)

    async def fetch_remote_content(self, url: str) -> ContentDocument | None:
        try:
            async with httpx.AsyncClient(
                timeout=REMOTE_TIMEOUT_S,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                res = await client.get(url, headers={"Accept": "application/json"})
                res.raise_for_status()
                if len(res.content) > REMOTE_MAX_BYTES:
                    logger.warning("Remote content too large url=%s bytes=%s", url, len(res.content))
                    return None
                raw: Any = res.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Remote content fetch failed url=%s error=%s", url, exc)
            return None
        try:
            return ContentDocument.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Remote content invalid url=%s error=%s", url, exc)
            return None

    async def load_for_gift(self, gift_id: str, content_path: str | None, content_url: str | None) -> ContentDocument | None:
        if content_url:
            document = await self.fetch_remote_content(content_url)
            if document is not None:
                return document
            logger.info("Falling back to local content gift_id=%s", gift_id)
        if content_path:
            return await asyncio.to_thread(self.load_content, content_path)
        return None


content_store = ContentStore()


def get_content_store() -> ContentStore:
    return content_store
