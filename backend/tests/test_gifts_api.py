from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


def _gift_payload(number: int = 1, **extra) -> dict:
    payload = {
        "number": number,
        "open_date": "2025-07-01",
        "english_description": "Find the teapot",
        "title": "Tea time",
        "code": "MOON-42",
        "content": {
            "blocks": [
                {"type": "text", "content": "Hello"},
                {"type": "secret", "content": [{"type": "quote", "content": "psst"}]},
            ],
            "metadata": {"senderName": "Anna"},
        },
    }
    payload.update(extra)
    return payload


def _create(client: TestClient, auth_headers: dict, **kwargs) -> dict:
    res = client.post("/admin/gifts", json=_gift_payload(**kwargs), headers=auth_headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_admin_create_and_get(client, auth_headers):
    created = _create(client, auth_headers)
    assert len(created["id"]) == 32
    assert created["number"] == 1
    assert created["content_path"] == created["id"]
    assert created["open_date"].startswith("2025-06-30T19:00:00")

    res = client.get(f"/admin/gifts/{created['id']}", headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["title"] == "Tea time"
    assert data["content"]["blocks"][0]["content"] == "Hello"
    assert data["content"]["metadata"]["senderName"] == "Anna"


def test_admin_routes_require_auth(client):
    assert client.get("/admin/gifts").status_code == 401
    assert client.post("/admin/gifts", json=_gift_payload()).status_code == 401
    assert client.delete("/admin/gifts/abc").status_code == 401


def test_invalid_token_is_rejected(client):
    res = client.get("/admin/gifts", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token"


def test_duplicate_number_conflicts(client, auth_headers):
    _create(client, auth_headers)
    res = client.post("/admin/gifts", json=_gift_payload(title="Again"), headers=auth_headers)
    assert res.status_code == 409
    assert "already taken" in res.json()["detail"]
    assert len(client.get("/admin/gifts", headers=auth_headers).json()) == 1


def test_unknown_block_type_rejected(client, auth_headers):
    payload = _gift_payload(content={"blocks": [{"type": "hologram", "content": "?"}]})
    res = client.post("/admin/gifts", json=payload, headers=auth_headers)
    assert res.status_code == 422
    assert client.get("/admin/gifts", headers=auth_headers).json() == []


def test_non_positive_number_rejected(client, auth_headers):
    res = client.post("/admin/gifts", json=_gift_payload(number=0), headers=auth_headers)
    assert res.status_code == 422


def test_public_view_follows_clock(client, auth_headers, clock):
    created = _create(client, auth_headers, open_date="2025-08-01")

    locked = client.get(f"/gifts/{created['id']}").json()
    assert locked["state"] == "locked"
    assert locked["title"] is None
    assert locked["code"] is None
    assert locked["blocks"] == []

    clock.override(datetime(2025, 8, 1, tzinfo=timezone(timedelta(hours=5))))
    opened = client.get(f"/gifts/{created['id']}").json()
    assert opened["state"] == "full"
    assert opened["title"] == "Tea time"
    assert opened["code"] == "MOON-42"
    assert opened["blocks"][1] == {"type": "restricted", "message": "Oops, only Lesya sees this content"}

    admin_view = client.get(f"/gifts/{created['id']}", headers=auth_headers).json()
    assert admin_view["blocks"][1]["type"] == "secret"


def test_secret_gift_restricted_for_anonymous(client, auth_headers):
    created = _create(client, auth_headers, is_secret=True)

    anonymous = client.get(f"/gifts/{created['id']}").json()
    assert anonymous["state"] == "restricted"
    assert all(block["type"] == "restricted" for block in anonymous["blocks"])
    assert anonymous["code"] == "MOON-42"

    admin_view = client.get(f"/gifts/{created['id']}", headers=auth_headers).json()
    assert admin_view["state"] == "full"


def test_unknown_gift_is_404(client, auth_headers):
    assert client.get("/gifts/does-not-exist").status_code == 404
    assert client.get("/admin/gifts/does-not-exist", headers=auth_headers).status_code == 404
    assert client.put("/admin/gifts/does-not-exist", json={"title": "x"}, headers=auth_headers).status_code == 404
    assert client.delete("/admin/gifts/does-not-exist", headers=auth_headers).status_code == 404


def test_index_and_latest(client, auth_headers):
    first = _create(client, auth_headers, number=1, open_date="2025-07-01")
    _create(client, auth_headers, number=2, open_date="2025-07-20")
    third = _create(client, auth_headers, number=3, open_date="2025-07-10")

    index = client.get("/gifts").json()
    assert [(g["number"], g["is_open"]) for g in index] == [(1, True), (2, False), (3, True)]
    assert "title" not in index[0]

    latest = client.get("/gifts/latest").json()
    assert latest == {"id": third["id"], "number": 3}
    assert first["id"] != third["id"]


def test_latest_is_empty_before_first_gift(client):
    assert client.get("/gifts/latest").json() == {"id": None, "number": None}


def test_update_and_delete(client, auth_headers):
    created = _create(client, auth_headers)
    _create(client, auth_headers, number=2)

    res = client.put(
        f"/admin/gifts/{created['id']}",
        json={"title": "Renamed", "content": {"blocks": [{"type": "text", "content": "Updated"}]}},
        headers=auth_headers,
    )
    assert res.status_code == 200
    assert res.json()["title"] == "Renamed"
    assert res.json()["content"]["blocks"] == [{"type": "text", "content": "Updated", "heading": None, "style": None, "alignment": None}]

    conflict = client.put(f"/admin/gifts/{created['id']}", json={"number": 2}, headers=auth_headers)
    assert conflict.status_code == 409

    assert client.delete(f"/admin/gifts/{created['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/gifts/{created['id']}").status_code == 404


def test_gallery_hides_locked_photos(client, auth_headers):
    _create(client, auth_headers, number=1, memory_photo={"photo_url": "/static/one.jpg", "text": "us"})
    _create(client, auth_headers, number=2, open_date="2025-07-30", memory_photo={"photo_url": "/static/two.jpg"})

    gallery = client.get("/gallery").json()
    assert [p["number"] for p in gallery] == [1, 2]
    assert gallery[0]["photo_url"] == "/static/one.jpg"
    assert gallery[1]["is_open"] is False
    assert gallery[1]["photo_url"] is None
