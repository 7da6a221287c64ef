import asyncio
import json
import logging
import os
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any

import redis.asyncio as redis

from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.gift_cache")

KEY_PREFIX = "gift:render"
KEYSET_PREFIX = "gift:renderkeys"


@dataclass
class CacheCounters:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total * 100, 2) if total else 0.0


class _MemoryRenders:
    """Bounded TTL map used when redis is not configured."""

    def __init__(self, max_items: int = 500) -> None:
        self._items: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self._max_items = max_items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, key: str) -> str | None:
        entry = self._items.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= time.monotonic():
            del self._items[key]
            return None
        return payload

    def set(self, key: str, payload: str, ttl: int) -> None:
        self._items[key] = (time.monotonic() + max(1, ttl), payload)
        self._items.move_to_end(key)
        while len(self._items) > self._max_items:
            self._items.popitem(last=False)

    def drop_prefix(self, prefix: str) -> int:
        keys = [key for key in self._items if key.startswith(prefix)]
        for key in keys:
            del self._items[key]
        return len(keys)


def _testing() -> bool:
    return (os.getenv("TESTING") or "").strip().lower() in {"1", "true", "yes"}


class GiftRenderCache:
    """Short-lived cache of unlocked gift renders.

    Keys carry ``(gift_id, revision, now_bucket, viewer)``. A new bucket or a
    pinned demo clock always misses, and every edit bumps the revision so an
    entry written before the edit is never read again even when
    ``invalidate_gift`` could not reach redis. Callers store only renders that
    were unlocked for the whole bucket. Redis failures put the cache into a
    cooldown during which every call is a miss.
    """

    def __init__(
        self,
        redis_dsn: str | None = None,
        ttl: int | None = None,
        enabled: bool | None = None,
        memory_fallback: bool | None = None,
    ) -> None:
        self._redis_dsn = (redis_dsn or settings.redis_dsn or "").strip()
        self._ttl = max(1, int(ttl or settings.gift_cache_ttl_seconds))
        self._enabled = settings.gift_cache_enabled if enabled is None else enabled
        if memory_fallback is None:
            memory_fallback = redis_dsn is None and not _testing()
        self._memory = _MemoryRenders() if memory_fallback else None
        self._redis: redis.Redis | None = None
        self._connect_lock = asyncio.Lock()
        self._failures = 0
        self._cooldown_until = 0.0
        self.counters = CacheCounters()

    @property
    def ttl(self) -> int:
        return self._ttl

    @property
    def enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def render_key(gift_id: str, revision: str, bucket: int, is_authenticated: bool) -> str:
        return f"{KEY_PREFIX}:{gift_id}:{revision}:{bucket}:{'auth' if is_authenticated else 'anon'}"

    @staticmethod
    def keyset_key(gift_id: str) -> str:
        return f"{KEYSET_PREFIX}:{gift_id}"

    def _redis_failed(self, exc: Exception) -> None:
        self._redis = None
        self._failures += 1
        cooldown = min(60.0, 2.0 ** min(self._failures, 6))
        self._cooldown_until = time.monotonic() + cooldown
        self.counters.errors += 1
        logger.warning(
            "GiftRenderCache redis unavailable failures=%s cooldown_s=%.0f error=%s",
            self._failures,
            cooldown,
            exc,
        )

    async def _client(self) -> redis.Redis | None:
        if not self._enabled or not self._redis_dsn:
            return None
        if self._redis is not None:
            return self._redis
        if time.monotonic() < self._cooldown_until:
            return None
        async with self._connect_lock:
            if self._redis is None and time.monotonic() >= self._cooldown_until:
                try:
                    client = redis.from_url(
                        self._redis_dsn,
                        encoding="utf-8",
                        decode_responses=True,
                        socket_connect_timeout=2,
                        socket_timeout=2,
                    )
                    await client.ping()
                except (redis.RedisError, OSError) as exc:
                    self._redis_failed(exc)
                else:
                    self._redis = client
                    self._failures = 0
                    logger.info("GiftRenderCache connected redis=%s", self._redis_dsn)
        return self._redis

    async def get_render(
        self,
        gift_id: str,
        revision: str,
        bucket: int,
        is_authenticated: bool,
    ) -> dict[str, Any] | None:
        if not self._enabled:
            return None
        key = self.render_key(gift_id, revision, bucket, is_authenticated)
        try:
            client = await self._client()
            if client is not None:
                raw = await client.get(key)
            elif self._memory is not None:
                raw = self._memory.get(key)
            else:
                raw = None
        except redis.RedisError as exc:
            self._redis_failed(exc)
            return None

        if not raw:
            self.counters.misses += 1
            return None
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            self.counters.errors += 1
            logger.debug("GiftRenderCache dropped unreadable entry key=%s error=%s", key, exc)
            return None
        self.counters.hits += 1
        return payload

    async def set_render(
        self,
        gift_id: str,
        revision: str,
        bucket: int,
        is_authenticated: bool,
        payload: dict[str, Any],
    ) -> bool:
        if not self._enabled:
            return False
        key = self.render_key(gift_id, revision, bucket, is_authenticated)
        try:
            raw = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            self.counters.errors += 1
            logger.debug("GiftRenderCache cannot encode render gift_id=%s error=%s", gift_id, exc)
            return False

        try:
            client = await self._client()
            if client is None:
                if self._memory is None:
                    return False
                self._memory.set(key, raw, self._ttl)
            else:
                keyset = self.keyset_key(gift_id)
                await client.setex(key, self._ttl, raw)
                await client.sadd(keyset, key)
                await client.expire(keyset, self._ttl + 300)
        except redis.RedisError as exc:
            self._redis_failed(exc)
            return False
        self.counters.sets += 1
        return True

    async def invalidate_gift(self, gift_id: str) -> int:
        prefix = f"{KEY_PREFIX}:{gift_id}:"
        dropped = self._memory.drop_prefix(prefix) if self._memory is not None else 0
        try:
            client = await self._client()
            if client is None:
                return dropped
            keyset = self.keyset_key(gift_id)
            keys = list(await client.smembers(keyset))
            if not keys:
                keys = [key async for key in client.scan_iter(match=f"{prefix}*")]
            dropped += int(await client.delete(*keys, keyset))
        except redis.RedisError as exc:
            self._redis_failed(exc)
        logger.debug("GiftRenderCache invalidated gift_id=%s keys=%s", gift_id, dropped)
        return dropped

    async def ping(self) -> bool:
        client = await self._client()
        if client is None:
            return False
        try:
            await client.ping()
        except redis.RedisError as exc:
            self._redis_failed(exc)
            return False
        return True

    async def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = asdict(self.counters)
        stats.update(
            hit_rate=self.counters.hit_rate,
            enabled=self._enabled,
            ttl=self._ttl,
            redis=self._redis is not None,
            memory_items=len(self._memory) if self._memory is not None else None,
            cooldown_s=round(max(0.0, self._cooldown_until - time.monotonic()), 1),
            connect_failures=self._failures,
        )
        return stats


gift_cache = GiftRenderCache()


def get_gift_cache() -> GiftRenderCache:
    return gift_cache
