import logging
from pathlib import Path

from gift_reveal.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# chatty at INFO, useless for reveal debugging
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "multipart", "PIL")


def _level(name: str | None) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _has_file_handler(root: logging.Logger, path: Path) -> bool:
    target = str(path.resolve())
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in root.handlers
    )


def configure_logging(level_name: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Attach stream/file handlers to the root logger once and return the app logger."""
    level = _level(level_name or settings.log_level)
    log_file = settings.log_file if log_file is None else log_file
    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT)

    if not root.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        root.addHandler(stream)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        if not _has_file_handler(root, path):
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger = logging.getLogger("gift_reveal")
    logger.setLevel(level)
    return logger
