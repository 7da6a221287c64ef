from typing import Any


class NullGiftRenderCache:
    """Drop-in for GiftRenderCache that never stores a render."""

    ttl = 1
    enabled = False

    async def get_render(self, gift_id: str, revision: str, bucket: int, is_authenticated: bool) -> dict[str, Any] | None:
        return None

    async def set_render(
        self,
        gift_id: str,
        revision: str,
        bucket: int,
        is_authenticated: bool,
        payload: dict[str, Any],
    ) -> bool:
        return False

    async def invalidate_gift(self, gift_id: str) -> int:
        return 0

    async def ping(self) -> bool:
        return True

    async def get_stats(self) -> dict[str, Any]:
        return {"enabled": False}
