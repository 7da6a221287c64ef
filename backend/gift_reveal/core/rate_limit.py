"""Sliding-window rate limiting kept in process memory.

Only the login form and the cipher toy are limited; both are cheap to hammer
and there is a single admin account to guess.
"""

import logging
import time
from collections import OrderedDict, deque

from fastapi import HTTPException, Request, status

from gift_reveal.core.audit import audit_rate_limit_exceeded
from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.rate_limit")

MAX_KEYS = 10000


class SlidingWindowLimiter:
    def __init__(self, max_keys: int = MAX_KEYS, clock=time.monotonic) -> None:
        self._hits: OrderedDict[str, deque[float]] = OrderedDict()
        self._max_keys = max_keys
        self._clock = clock
        self._allowed = 0
        self._rejected = 0

    def hit(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        """Record an attempt; returns ``(allowed, retry_after_seconds)``."""
        now = self._clock()
        hits = self._hits.get(key)
        if hits is None:
            hits = self._hits[key] = deque()
        self._hits.move_to_end(key)

        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= max_requests:
            self._rejected += 1
            retry_after = int(hits[0] + window_seconds - now) + 1
            return False, max(1, retry_after)

        hits.append(now)
        self._allowed += 1
        self._evict()
        return True, 0

    def _evict(self) -> None:
        overflow = len(self._hits) - self._max_keys
        if overflow <= 0:
            return
        for _ in range(overflow):
            self._hits.popitem(last=False)
        logger.warning("Rate limit keys exceeded %d, dropped %d least recent", self._max_keys, overflow)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def get_stats(self) -> dict[str, int]:
        return {
            "keys": len(self._hits),
            "allowed": self._allowed,
            "rejected": self._rejected,
            "max_keys": self._max_keys,
        }


limiter = SlidingWindowLimiter()


def get_client_identifier(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    if request.client:
        return f"ip:{request.client.host}"
    return f"ua:{hash(request.headers.get('User-Agent', ''))}"


def check_rate_limit(
    request: Request,
    max_requests: int | None = None,
    window_seconds: int | None = None,
    key_suffix: str = "",
) -> None:
    """Raise 429 with ``Retry-After`` once the caller exhausts the window."""
    if not settings.rate_limit_enabled:
        return

    client_id = get_client_identifier(request)
    path = request.url.path
    allowed, retry_after = limiter.hit(
        f"{client_id}:{path}:{key_suffix}",
        max_requests or settings.rate_limit_requests,
        window_seconds or settings.rate_limit_window_seconds,
    )
    if allowed:
        return

    logger.warning("Rate limit exceeded client=%s path=%s retry_after=%ds", client_id, path, retry_after)
    audit_rate_limit_exceeded(request, path, retry_after)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
        headers={"Retry-After": str(retry_after)},
    )
