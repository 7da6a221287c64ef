import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from gift_reveal.api.deps import CurrentUserDep, DbSessionDep, OptionalUserDep
from gift_reveal.core.audit import audit_login_failed, audit_login_success, audit_logout
from gift_reveal.core.config import settings
from gift_reveal.core.rate_limit import check_rate_limit
from gift_reveal.core.security import create_access_token, verify_password
from gift_reveal.models.models import User
from gift_reveal.schemas.auth import LoginRequest, UserPublic


router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("gift_reveal.auth")

SESSION_COOKIE = "access_token"
# same message for unknown user and wrong password
INVALID_CREDENTIALS = "Invalid username or password"


def _cookie_options() -> dict[str, Any]:
    # deployed frontends live on another origin and only get the cookie with SameSite=None
    if settings.is_local:
        return {"samesite": "lax", "secure": False}
    return {"samesite": "none", "secure": True}


async def _authenticate(db: DbSessionDep, request: Request, payload: LoginRequest) -> User:
    try:
        user = (await db.execute(select(User).where(User.username == payload.username))).scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("Login lookup failed username=%s", payload.username)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")

    if user is None:
        reason = "user_not_found"
    elif not verify_password(payload.password, user.hashed_password):
        reason = "invalid_password"
    else:
        return user

    logger.info("Login rejected username=%s reason=%s", payload.username, reason)
    audit_login_failed(request, payload.username, reason)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)


@router.post("/login", response_model=UserPublic)
async def login_user(
    payload: LoginRequest,
    response: Response,
    db: DbSessionDep,
    request: Request,
) -> UserPublic:
    check_rate_limit(request, max_requests=settings.rate_limit_login_requests, window_seconds=60, key_suffix="login")
    user = await _authenticate(db, request, payload)

    response.set_cookie(
        SESSION_COOKIE,
        create_access_token(str(user.id)),
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        httponly=True,
        **_cookie_options(),
    )
    audit_login_success(request, user.id, user.username)
    logger.info("Login accepted user_id=%s", user.id)
    return UserPublic.model_validate(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_user(request: Request, response: Response, user: OptionalUserDep) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/", **_cookie_options())
    audit_logout(request, user.id if user else None)


@router.get("/me", response_model=UserPublic)
async def get_me(current_user: CurrentUserDep) -> UserPublic:
    return UserPublic.model_validate(current_user)
