import logging

from starlette.requests import Request

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME
from gift_reveal.core.audit import REDACTED, AuditAction, build_event


def _request(headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.0.0.9", 5000),
        "query_string": b"",
        "state": {},
    }
    return Request(scope)


def test_event_redacts_sensitive_details():
    event = build_event(
        AuditAction.LOGIN_FAILED,
        details={"username": "lesya", "password": "hunter2", "access_token": "abc"},
        success=False,
    )
    assert event["action"] == "login_failed"
    assert event["ok"] is False
    assert event["details"] == {"username": "lesya", "password": REDACTED, "access_token": REDACTED}


def test_event_prefers_forwarded_ip():
    event = build_event(AuditAction.LOGOUT, _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}), user_id=3)
    assert event["ip"] == "203.0.113.5"
    assert event["user"] == "3"
    assert event["path"] == "/auth/login"


def test_event_falls_back_to_client_host():
    event = build_event(AuditAction.LOGOUT, _request())
    assert event["ip"] == "10.0.0.9"
    assert "user" not in event


def test_failed_login_is_audited_at_warning(client, caplog):
    with caplog.at_level(logging.INFO, logger="gift_reveal.audit"):
        client.post("/auth/login", json={"username": ADMIN_USERNAME, "password": "nope"})
        client.post("/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})

    audit = [r for r in caplog.records if r.name == "gift_reveal.audit"]
    assert [r.levelno for r in audit] == [logging.WARNING, logging.INFO]
    assert "invalid_password" in audit[0].getMessage()
    assert "nope" not in audit[0].getMessage()
