"""
Тесты для модуля безопасности: хэширование паролей, JWT токены.
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from gift_reveal.core.config import settings
from gift_reveal.core.security import (
    access_token_user_id,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


class TestPasswordHashing:
    """Тесты хэширования паролей."""

    def test_password_hash_creates_different_hashes(self):
        """Разные хэши для одинаковых паролей (salt)."""
        password = "MySecurePassword123!"
        hash1 = get_password_hash(password)
        hash2 = get_password_hash(password)

        assert hash1 != hash2
        assert hash1 != password

    def test_verify_password(self):
        password = "MySecurePassword123!"
        hashed = get_password_hash(password)

        assert verify_password(password, hashed) is True
        assert verify_password("WrongPassword", hashed) is False
        assert verify_password("", hashed) is False

    def test_password_hash_bcrypt_format(self):
        """Хэш имеет формат bcrypt."""
        assert get_password_hash("test123").startswith("$2b$")


class TestAccessToken:
    """Тесты access токенов."""

    def test_create_access_token_contains_subject(self):
        token = create_access_token("123")
        payload = decode_access_token(token)

        assert payload is not None
        assert payload.get("sub") == "123"
        assert payload.get("type") == "access"

    def test_tokens_are_unique(self):
        assert create_access_token("1") != create_access_token("1")

    def test_custom_expiration(self):
        token = create_access_token("1", expires_delta_minutes=5)
        payload = decode_access_token(token)
        expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

        assert expires - datetime.now(timezone.utc) <= timedelta(minutes=5)

    def test_expired_token_is_rejected(self):
        """Просроченный токен не декодируется."""
        token = jwt.encode(
            {"sub": "1", "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token) is None

    def test_wrong_token_type_is_rejected(self):
        token = jwt.encode(
            {"sub": "1", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token) is None

    def test_foreign_signature_is_rejected(self):
        token = jwt.encode({"sub": "1", "type": "access"}, "another-secret-key-of-enough-length!", algorithm="HS256")
        assert decode_access_token(token) is None

    def test_garbage_is_rejected(self):
        assert decode_access_token("not.a.token") is None
        assert decode_access_token("") is None


class TestAccessTokenUserId:
    def test_numeric_subject(self):
        assert access_token_user_id(create_access_token("42")) == 42

    def test_non_numeric_subject(self):
        assert access_token_user_id(create_access_token("lesya")) is None

    def test_invalid_token(self):
        assert access_token_user_id("garbage") is None
