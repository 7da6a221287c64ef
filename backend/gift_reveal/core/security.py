"""Password hashing and the session token carried in the ``access_token`` cookie."""

from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from gift_reveal.core.config import DEFAULT_JWT_SECRET, settings


logger = logging.getLogger("gift_reveal.security")

ACCESS_TOKEN_TYPE = "access"
_INSECURE_KEYS = {DEFAULT_JWT_SECRET, "secret", "jwt_secret", "changeme", ""}


def _ensure_signing_key() -> None:
    key = settings.jwt_secret_key or ""
    if key not in _INSECURE_KEYS and len(key) >= 32:
        return
    if not settings.is_local:
        raise RuntimeError("JWT_SECRET_KEY must be set to a secure value (32+ chars) in production")
    # sessions do not survive a restart of a local server
    settings.jwt_secret_key = secrets.token_urlsafe(64)
    logger.warning("JWT_SECRET_KEY was missing/insecure; generated ephemeral key for local dev")


_ensure_signing_key()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject: str, expires_delta_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=expires_delta_minutes or settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": ACCESS_TOKEN_TYPE,
        "jti": uuid4().hex,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims of an access token, or None for anything else."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims


def access_token_user_id(token: str) -> int | None:
    claims = decode_access_token(token)
    if not claims:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
