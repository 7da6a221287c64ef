import logging
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gift_reveal.core.clock import Clock, get_clock
from gift_reveal.core.content_store import ContentStore, get_content_store
from gift_reveal.core.gift_cache import GiftRenderCache, get_gift_cache
from gift_reveal.core.security import access_token_user_id
from gift_reveal.db.session import get_db
from gift_reveal.models.models import User
from gift_reveal.services.gift_store import GiftStore


logger = logging.getLogger("gift_reveal.auth")

DbSessionDep = Annotated[AsyncSession, Depends(get_db)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ContentStoreDep = Annotated[ContentStore, Depends(get_content_store)]
GiftCacheDep = Annotated[GiftRenderCache, Depends(get_gift_cache)]
SessionCookie = Annotated[str | None, Cookie(alias="access_token")]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def session_token(request: Request, cookie: str | None) -> str | None:
    """Cookie first, then ``Authorization: Bearer`` for scripts."""
    if cookie:
        return cookie
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def get_current_user(request: Request, db: DbSessionDep, access_token: SessionCookie = None) -> User:
    token = session_token(request, access_token)
    if token is None:
        raise _unauthorized("Not authenticated")

    user_id = access_token_user_id(token)
    if user_id is None:
        logger.info("Rejected session token path=%s", request.url.path)
        raise _unauthorized("Invalid token")

    user = await db.get(User, user_id)
    if user is None:
        logger.info("Session for removed user_id=%s path=%s", user_id, request.url.path)
        raise _unauthorized("User not found")
    return user


async def get_optional_user(request: Request, db: DbSessionDep, access_token: SessionCookie = None) -> User | None:
    token = session_token(request, access_token)
    user_id = access_token_user_id(token) if token else None
    if user_id is None:
        return None
    return await db.get(User, user_id)


def get_gift_store(db: DbSessionDep) -> GiftStore:
    return GiftStore(db)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
GiftStoreDep = Annotated[GiftStore, Depends(get_gift_store)]
