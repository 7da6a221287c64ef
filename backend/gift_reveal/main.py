from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from gift_reveal.api.routes import auth, cipher, clock, gifts, home, uploads
from gift_reveal.core.clock import reveal_clock
from gift_reveal.core.config import settings
from gift_reveal.core.content_store import ensure_media_dirs, get_media_root
from gift_reveal.core.gift_cache import gift_cache
from gift_reveal.core.gift_metrics import gift_metrics, request_stats
from gift_reveal.core.logger import configure_logging
from gift_reveal.core.rate_limit import limiter
from gift_reveal.db.session import async_session_factory, ensure_schema_ready


logger = configure_logging()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

app = FastAPI(title=settings.app_name, description="Date-gated gift reveal calendar", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id"],
    max_age=600,
)


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "<unmatched>"


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    request.state.request_id = request_id
    started = perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        elapsed = (perf_counter() - started) * 1000
        request_stats.observe(_route_template(request), elapsed, error=True)
        logger.exception("%s %s failed id=%s after %.1fms", request.method, request.url.path, request_id, elapsed)
        raise

    elapsed = (perf_counter() - started) * 1000
    request_stats.observe(_route_template(request), elapsed, error=response.status_code >= 500)
    logger.info(
        "%s %s -> %s id=%s %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        request_id,
        elapsed,
    )
    response.headers["X-Request-Id"] = request_id
    response.headers.update(SECURITY_HEADERS)
    return response


def _log_database_target() -> None:
    try:
        url = make_url(settings.database_dsn)
    except ArgumentError:
        logger.warning("DATABASE_DSN is not a valid SQLAlchemy URL")
        return
    logger.info("Database driver=%s host=%s name=%s", url.get_backend_name(), url.host, url.database)


@app.on_event("startup")
async def on_startup() -> None:
    if not settings.is_local:
        settings.validate_secrets()
    _log_database_target()
    logger.info("CORS origins %s", settings.cors_origins)
    ensure_media_dirs()
    await ensure_schema_ready()
    logger.info(
        "Reveal calendar utc_offset_h=%s word_start=%s birthday=%s",
        settings.reveal_utc_offset_hours,
        settings.word_start_date.isoformat(),
        settings.birthday_date.isoformat(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


for module in (auth, home, gifts, uploads, clock, cipher):
    app.include_router(module.router)
app.include_router(gifts.admin_router)

app.mount(
    settings.media_path.rstrip("/") or "/static",
    StaticFiles(directory=get_media_root(), check_dir=False),
    name="media",
)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "clock": reveal_clock.state().mode}


@app.get("/health/db")
async def health_db():
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.exception("Database health check failed")
        return JSONResponse(status_code=503, content={"status": "error", "error": exc.__class__.__name__})
    return {"status": "ok"}


@app.get("/health/cache")
async def health_cache() -> dict[str, object]:
    return {"enabled": gift_cache.enabled, "redis": await gift_cache.ping()}


@app.get("/metrics")
async def get_metrics() -> dict[str, object]:
    return {
        **request_stats.snapshot(),
        "gifts": gift_metrics.snapshot(),
        "gift_cache": await gift_cache.get_stats(),
        "rate_limit": limiter.get_stats(),
    }
