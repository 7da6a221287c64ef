"""Audit trail for the admin surface.

Every login attempt, gift mutation and demo clock change is written to the
``gift_reveal.audit`` logger as one line. Failed actions go out at WARNING so
they survive a production log level of WARNING.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import Request


logger = logging.getLogger("gift_reveal.audit")

REDACTED = "***"
_SENSITIVE_MARKERS = ("password", "token", "secret", "authorization", "cookie")
_USER_AGENT_LIMIT = 160


class AuditAction(str, Enum):
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"

    GIFT_CREATE = "gift_create"
    GIFT_UPDATE = "gift_update"
    GIFT_DELETE = "gift_delete"
    GIFT_UPLOAD = "gift_upload"

    CLOCK_OVERRIDE = "clock_override"
    CLOCK_STEP = "clock_step"
    CLOCK_CLEAR = "clock_clear"

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else None


def _scrub(details: dict[str, Any]) -> dict[str, Any]:
    scrubbed = {}
    for name, value in details.items():
        lowered = name.lower()
        scrubbed[name] = REDACTED if any(marker in lowered for marker in _SENSITIVE_MARKERS) else value
    return scrubbed


def build_event(
    action: AuditAction,
    request: Request | None = None,
    user_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "action": action.value,
        "ok": success,
    }
    if user_id is not None:
        event["user"] = str(user_id)
    if request is not None:
        event["ip"] = _client_ip(request)
        event["path"] = request.url.path
        event["ua"] = request.headers.get("User-Agent", "")[:_USER_AGENT_LIMIT]
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            event["request_id"] = request_id
    if details:
        event["details"] = _scrub(details)
    return event


def audit_log(
    action: AuditAction,
    request: Request | None = None,
    user_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    event = build_event(action, request, user_id, details, success)
    logger.log(logging.INFO if success else logging.WARNING, "AUDIT %s", event)


def audit_login_success(request: Request, user_id: int, username: str) -> None:
    audit_log(AuditAction.LOGIN, request, user_id, {"username": username})


def audit_login_failed(request: Request, username: str, reason: str) -> None:
    audit_log(AuditAction.LOGIN_FAILED, request, None, {"username": username, "reason": reason}, success=False)


def audit_logout(request: Request, user_id: int | None) -> None:
    audit_log(AuditAction.LOGOUT, request, user_id)


def audit_gift_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    gift_id: str | None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    audit_log(action, request, user_id, {"gift_id": gift_id, **(details or {})}, success=success)


def audit_clock_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    details: dict[str, Any] | None = None,
) -> None:
    audit_log(action, request, user_id, details)


def audit_rate_limit_exceeded(request: Request, endpoint: str, retry_after: int) -> None:
    audit_log(
        AuditAction.RATE_LIMIT_EXCEEDED,
        request,
        None,
        {"endpoint": endpoint, "retry_after": retry_after},
        success=False,
    )
