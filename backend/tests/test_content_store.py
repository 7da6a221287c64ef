import json

import httpx
import pytest

from gift_reveal.core.content_store import ContentStore
from gift_reveal.schemas.gift import ContentDocument, SecretBlock, TextBlock


def _document() -> ContentDocument:
    return ContentDocument.model_validate(
        {
            "blocks": [
                {"type": "text", "content": "Hello", "style": "title"},
                {"type": "secret", "content": [{"type": "quote", "content": "psst"}]},
            ],
            "metadata": {"sender_name": "Anna"},
        }
    )


def test_save_then_load(tmp_path):
    store = ContentStore(tmp_path)
    assert store.save_content("g1", _document()) is True
    loaded = store.load_content("g1")
    assert loaded is not None
    assert isinstance(loaded.blocks[0], TextBlock)
    assert isinstance(loaded.blocks[1], SecretBlock)
    assert loaded.metadata.sender_name == "Anna"
    assert (tmp_path / "g1" / "content.json").is_file()


def test_load_accepts_stored_paths(tmp_path):
    store = ContentStore(tmp_path)
    store.save_content("g2", _document())
    assert store.load_content("g2/content.json") is not None
    assert store.load_content("gifts/g2/content.json") is not None


def test_load_missing_returns_none(tmp_path):
    assert ContentStore(tmp_path).load_content("nope") is None
    assert ContentStore(tmp_path).load_content("") is None


def test_load_corrupt_returns_none(tmp_path):
    (tmp_path / "bad").mkdir()
    (tmp_path / "bad" / "content.json").write_text("{not json", encoding="utf-8")
    assert ContentStore(tmp_path).load_content("bad") is None


def test_load_rejects_unknown_block_type(tmp_path):
    (tmp_path / "odd").mkdir()
    (tmp_path / "odd" / "content.json").write_text(
        json.dumps({"blocks": [{"type": "hologram", "content": "?"}]}),
        encoding="utf-8",
    )
    assert ContentStore(tmp_path).load_content("odd") is None


def test_load_refuses_paths_outside_root(tmp_path):
    outside = tmp_path / "secret.json"
    outside.write_text(json.dumps({"blocks": []}), encoding="utf-8")
    store = ContentStore(tmp_path / "gifts")
    assert store.load_content("../secret.json") is None


def test_camel_case_documents_load(tmp_path):
    (tmp_path / "legacy").mkdir()
    (tmp_path / "legacy" / "content.json").write_text(
        json.dumps(
            {
                "blocks": [{"type": "secret", "accessMessage": "not for you", "content": []}],
                "metadata": {"senderName": "Mark", "createdAt": "2025-06-01"},
            }
        ),
        encoding="utf-8",
    )
    loaded = ContentStore(tmp_path).load_content("legacy")
    assert loaded.blocks[0].access_message == "not for you"
    assert loaded.metadata.sender_name == "Mark"


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = ContentStore(blocker)
    assert store.save_content("g1", _document()) is False


def test_delete_gift_dir(tmp_path):
    store = ContentStore(tmp_path)
    store.save_content("g3", _document())
    assert store.delete_gift_dir("g3") is True
    assert not (tmp_path / "g3").exists()
    assert store.delete_gift_dir("g3") is False


def test_save_gift_file_builds_media_url(tmp_path):
    store = ContentStore(tmp_path / "gifts")
    url = store.save_gift_file("g4", "hint-image.png", b"data")
    assert url.endswith("/static/gifts/g4/hint-image.png")
    url = store.save_gift_file("g4", "clip_1.mp3", b"data", subfolder="blocks")
    assert url.endswith("/static/gifts/g4/blocks/clip_1.mp3")
    assert (tmp_path / "gifts" / "g4" / "blocks" / "clip_1.mp3").read_bytes() == b"data"


@pytest.mark.anyio
async def test_remote_content_wins_over_local(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"blocks": [{"type": "text", "content": "remote"}]})

    store = ContentStore(tmp_path, transport=httpx.MockTransport(handler))
    store.save_content("g5", ContentDocument.model_validate({"blocks": [{"type": "text", "content": "local"}]}))
    loaded = await store.load_for_gift("g5", "g5", "https://cdn.example.com/g5.json")
    assert loaded.blocks[0].content == "remote"


@pytest.mark.anyio
async def test_remote_failure_falls_back_to_local(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    store = ContentStore(tmp_path, transport=httpx.MockTransport(handler))
    store.save_content("g6", ContentDocument.model_validate({"blocks": [{"type": "text", "content": "local"}]}))
    loaded = await store.load_for_gift("g6", "g6", "https://cdn.example.com/g6.json")
    assert loaded.blocks[0].content == "local"


@pytest.mark.anyio
async def test_remote_invalid_document_returns_none(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"blocks": [{"type": "unknown"}]})

    store = ContentStore(tmp_path, transport=httpx.MockTransport(handler))
    assert await store.fetch_remote_content("https://cdn.example.com/x.json") is None
