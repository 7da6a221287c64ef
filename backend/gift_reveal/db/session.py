import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gift_reveal.core.config import settings


logger = logging.getLogger("gift_reveal.db")

# columns added after the first deployment; create_all never alters existing tables
_BACKFILL_COLUMNS = {
    "gifts": {"content_url": "VARCHAR(2048)"},
}


def _is_sqlite() -> bool:
    return settings.database_dsn.lower().startswith("sqlite")


def _engine_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": False, "future": True, "pool_pre_ping": True}
    if "postgresql" in settings.database_dsn.lower():
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
            pool_timeout=settings.db_pool_timeout,
        )
    return kwargs


engine = create_async_engine(settings.database_dsn, **_engine_kwargs())


if _is_sqlite():
    # memory photos rely on ON DELETE CASCADE
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Base(DeclarativeBase):
    pass


async_session_factory = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)

_schema_ready = False
_schema_lock = asyncio.Lock()


def upgrade_schema(connection: Connection) -> list[str]:
    """Create missing tables and add backfill columns; returns the columns added."""
    Base.metadata.create_all(connection)
    inspector = inspect(connection)
    added: list[str] = []
    for table, columns in _BACKFILL_COLUMNS.items():
        existing = {column["name"] for column in inspector.get_columns(table)}
        for name, ddl in columns.items():
            if name in existing:
                continue
            connection.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}")
            added.append(f"{table}.{name}")
    return added


async def ensure_schema_ready() -> None:
    """Bring the schema up to date once for environments where startup hooks are skipped."""
    global _schema_ready
    if _schema_ready:
        return

    async with _schema_lock:
        if _schema_ready:
            return

        from gift_reveal.models import models as _models  # noqa: F401

        async with engine.begin() as conn:
            added = await conn.run_sync(upgrade_schema)
        if added:
            logger.info("Schema backfilled columns=%s", ",".join(added))
        _schema_ready = True


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    await ensure_schema_ready()
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
