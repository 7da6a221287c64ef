import os
import shutil
import warnings
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

# Set environment variables BEFORE importing app modules
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite:///file:gift_reveal_tests?mode=memory&cache=shared&uri=true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-32-chars-minimum!!"
os.environ["MEDIA_ROOT"] = "uploads-test"
os.environ["REDIS_DSN"] = ""
os.environ["TESTING"] = "1"

warnings.filterwarnings("ignore", category=DeprecationWarning)

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from gift_reveal.core.cache_null import NullGiftRenderCache
from gift_reveal.core.clock import FixedClock, OverridableClock, get_clock, get_overridable_clock
from gift_reveal.core.config import settings
from gift_reveal.core.content_store import ContentStore, get_content_store
from gift_reveal.core.gift_cache import get_gift_cache
from gift_reveal.core.security import create_access_token, get_password_hash
from gift_reveal.db.session import Base, get_db
from gift_reveal.main import app
from gift_reveal.models.models import User


# mid-campaign, well before the birthday
DEFAULT_NOW = datetime(2025, 7, 15, 12, 0, tzinfo=timezone.utc)
ADMIN_USERNAME = "lesya"
ADMIN_PASSWORD = "password123"


def pytest_configure(config):
    warnings.filterwarnings("ignore", category=DeprecationWarning)


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(os.path.join(os.path.dirname(__file__), "..", "uploads-test"), ignore_errors=True)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session", autouse=True)
def disable_rate_limiting():
    """Disable rate limiting for all tests."""
    original = settings.rate_limit_enabled
    settings.rate_limit_enabled = False
    yield
    settings.rate_limit_enabled = original


@pytest.fixture(autouse=True)
def sync_db_override(tmp_path):
    db_path = tmp_path / "sync-test.db"
    from gift_reveal.models import models as models_module
    _ = models_module
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    with Session(sync_engine) as session:
        session.add(User(username=ADMIN_USERNAME, hashed_password=get_password_hash(ADMIN_PASSWORD)))
        session.commit()
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    async_session = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield async_session
    app.dependency_overrides.clear()
    engine.sync_engine.dispose()


@pytest.fixture
def clock() -> OverridableClock:
    return OverridableClock(FixedClock(DEFAULT_NOW))


@pytest.fixture
def content_store(tmp_path) -> ContentStore:
    return ContentStore(tmp_path / "media" / "gifts")


@pytest.fixture(autouse=True)
def reveal_overrides(sync_db_override, clock, content_store):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_overridable_clock] = lambda: clock
    app.dependency_overrides[get_content_store] = lambda: content_store
    app.dependency_overrides[get_gift_cache] = NullGiftRenderCache
    yield


@pytest.fixture
async def session(sync_db_override):
    async with sync_db_override() as db:
        yield db


@pytest.fixture
def auth_headers() -> dict[str, str]:
    # the seeded admin is the first row
    return {"Authorization": f"Bearer {create_access_token('1')}"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)
