import json
from datetime import date, timedelta, timezone

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "CHANGE_ME"


def _split_origins(raw: str) -> list[str]:
    raw = raw.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
        except ValueError:
            items = None
        if isinstance(items, list):
            return [str(item).strip() for item in items if str(item).strip()]
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Runtime configuration, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Gift Reveal API"
    environment: str = "local"
    backend_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:3000"
    # comma separated list or JSON array
    backend_cors_origins: str = ""

    database_dsn: str = "sqlite+aiosqlite:///./gift_reveal.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 1800
    db_pool_timeout: int = 30
    redis_dsn: str = "redis://localhost:6379/0"

    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60
    rate_limit_login_requests: int = 5

    # every day boundary uses this offset, never the viewer's zone
    reveal_utc_offset_hours: int = 5
    word_start_date: date = date(2025, 7, 1)
    word_cycle_length: int = 365
    birthday_date: date = date(2025, 8, 1)
    birthday_word: str = "Happy Birthday"

    media_root: str = "static"
    media_path: str = "/static"
    upload_max_mb: int = 20

    gift_cache_enabled: bool = True
    gift_cache_ttl_seconds: int = 30
    gift_slow_ms: int = 500

    cipher_default_key: str = "8Frx0bRZKXUplMYvgeW93qJtAzLN2f1Bm6hCHjEsTQ4aiVdnPOu7cySwkGbDx5o"

    log_level: str = "INFO"
    log_file: str = ""

    @property
    def is_local(self) -> bool:
        return (self.environment or "local").strip().lower() == "local"

    @property
    def cors_origins(self) -> list[str]:
        origins = _split_origins(self.backend_cors_origins)
        if origins:
            return origins
        if self.is_local:
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        return [self.frontend_url] if self.frontend_url else []

    @property
    def reveal_timezone(self) -> timezone:
        return timezone(timedelta(hours=self.reveal_utc_offset_hours))

    def validate_secrets(self) -> None:
        """Raise if a deployed instance would sign sessions with a guessable key."""
        key = self.jwt_secret_key or ""
        if key == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET_KEY still has the placeholder value; set a random secret")
        if len(key) < 32:
            raise RuntimeError(f"JWT_SECRET_KEY must be at least 32 characters, got {len(key)}")


settings = Settings()
