from conftest import ADMIN_PASSWORD, ADMIN_USERNAME
from fastapi.testclient import TestClient

from gift_reveal.core.config import settings
from gift_reveal.main import app


def test_health_ok():
    client = TestClient(app)
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json().get("status") == "ok"
    assert res.json().get("clock") in {"live", "overridden"}


def test_request_id_is_echoed(client):
    res = client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert res.headers["X-Request-Id"] == "abc-123"
    assert res.headers["X-Content-Type-Options"] == "nosniff"


def test_metrics_include_gift_counters(client, auth_headers):
    gift = client.post(
        "/admin/gifts",
        json={"number": 1, "open_date": "2025-07-01", "english_description": "metrics"},
        headers=auth_headers,
    ).json()
    client.get(f"/gifts/{gift['id']}")
    client.get("/gifts")

    data = client.get("/metrics").json()
    assert data["requests_total"] >= 3
    assert data["gifts"]["gift_render"]["total"] >= 1
    assert data["gifts"]["gift_index"]["total"] >= 1
    assert data["gifts"]["content_write"]["total"] >= 1
    assert "/gifts" in data["by_path"]
    assert "/gifts/{gift_id}" in data["by_path"]
    assert not any(gift["id"] in path for path in data["by_path"])
    assert "hit_rate" in data["gift_cache"]
    assert "rate_limit" in data


def test_login_cookie_flags_prod():
    prev_env = settings.environment
    settings.environment = "prod"
    try:
        client = TestClient(app)
        res = client.post("/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        set_cookie = res.headers.get("set-cookie", "")
        assert "access_token=" in set_cookie
        assert "HttpOnly" in set_cookie
        assert "Secure" in set_cookie
        assert "samesite=none" in set_cookie.lower()
    finally:
        settings.environment = prev_env
