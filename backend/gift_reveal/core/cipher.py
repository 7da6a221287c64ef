"""Repeating-key XOR over Base64, the code game printed on gift cards.

Text is handled as UTF-16 code units: each Base64-decoded byte is XORed with
the code unit of the key at the same position. Keys and plain text outside
Latin-1 therefore work the same way as in the browser cipher page.
"""

import base64
import binascii
import logging

from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.cipher")


class CipherError(ValueError):
    pass


def _code_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def _from_code_units(units: list[int]) -> str:
    raw = b"".join(unit.to_bytes(2, "little") for unit in units)
    # lone surrogates cannot be sent as JSON
    return raw.decode("utf-16-le", errors="replace")


def _xor_units(data: list[int], key: str) -> list[int]:
    key_units = _code_units(key)
    return [unit ^ key_units[i % len(key_units)] for i, unit in enumerate(data)]


def _resolve_key(key: str | None) -> str:
    key = settings.cipher_default_key if key is None else key
    if not key:
        raise CipherError("Enter key")
    return key


def xor_decrypt(encrypted_text: str, key: str | None = None) -> str:
    """Base64-decode ``encrypted_text`` and XOR it with the repeating key."""
    key = _resolve_key(key)
    encrypted_text = (encrypted_text or "").strip()
    if not encrypted_text:
        raise CipherError("Encrypted text cannot be empty")
    try:
        raw = base64.b64decode(encrypted_text, validate=True)
    except (binascii.Error, ValueError) as exc:
        logger.debug("Cipher rejected input error=%s", exc)
        raise CipherError("Invalid encrypted text format") from exc
    return _from_code_units(_xor_units(list(raw), key))


def xor_encrypt(plain_text: str, key: str | None = None) -> str:
    key = _resolve_key(key)
    units = _xor_units(_code_units(plain_text), key)
    if any(unit > 0xFF for unit in units):
        raise CipherError("Text cannot be encrypted with this key")
    return base64.b64encode(bytes(units)).decode("ascii")
