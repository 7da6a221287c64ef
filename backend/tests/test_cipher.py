import base64

import pytest

from gift_reveal.core.cipher import CipherError, xor_decrypt, xor_encrypt
from gift_reveal.core.config import settings


def test_decrypt_known_vector():
    # "hi" XOR "k" -> 0x03 0x02
    encrypted = base64.b64encode(bytes([ord("h") ^ ord("k"), ord("i") ^ ord("k")])).decode()
    assert xor_decrypt(encrypted, "k") == "hi"


def test_encrypt_then_decrypt_with_default_key():
    encrypted = xor_encrypt("meet me at the old oak")
    assert encrypted != "meet me at the old oak"
    assert xor_decrypt(encrypted) == "meet me at the old oak"
    assert xor_decrypt(encrypted, settings.cipher_default_key) == "meet me at the old oak"


def test_key_repeats_over_long_text():
    text = "x" * 200
    assert xor_decrypt(xor_encrypt(text, "ab"), "ab") == text


def test_empty_text_rejected():
    with pytest.raises(CipherError, match="Encrypted text cannot be empty"):
        xor_decrypt("   ", "key")


def test_invalid_base64_rejected():
    with pytest.raises(CipherError, match="Invalid encrypted text format"):
        xor_decrypt("not base64!!", "key")


def test_empty_key_rejected():
    with pytest.raises(CipherError, match="Enter key"):
        xor_decrypt("aGk=", "")


def test_wrong_key_does_not_raise():
    encrypted = xor_encrypt("secret", "right")
    assert xor_decrypt(encrypted, "wrong") != "secret"


def test_decrypt_endpoint(client):
    res = client.post("/cipher/decrypt", json={"encrypted_text": xor_encrypt("under the bridge", "oak"), "key": "oak"})
    assert res.status_code == 200
    assert res.json() == {"text": "under the bridge"}


def test_decrypt_endpoint_uses_default_key(client):
    res = client.post("/cipher/decrypt", json={"encrypted_text": xor_encrypt("default")})
    assert res.json()["text"] == "default"


def test_decrypt_endpoint_rejects_bad_input(client):
    res = client.post("/cipher/decrypt", json={"encrypted_text": "%%%", "key": "oak"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid encrypted text format"


def test_high_bytes_decode_as_code_units():
    encrypted = base64.b64encode(bytes([0xE9 ^ ord("A")])).decode()
    assert xor_decrypt(encrypted, "A") == "é"


def test_cyrillic_key_and_text():
    encrypted = xor_encrypt("привет", "ключ")
    assert xor_decrypt(encrypted, "ключ") == "привет"


def test_text_that_does_not_fit_a_byte_is_rejected():
    with pytest.raises(CipherError):
        xor_encrypt("привет", "k")
