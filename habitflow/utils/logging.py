"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; request-scoped fields
(request id, user id) live in structlog's contextvars via ``RequestContext``
and are merged into every structlog event emitted during the request.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

LOGS_DIR = Path("logs")

_CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_ERROR_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
)


def _file_handler(filename: str, level: int, fmt: str, max_mb: int, backups: int):
    handler = logging.handlers.RotatingFileHandler(
        LOGS_DIR / filename, maxBytes=max_mb * 1024 * 1024, backupCount=backups
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ...).
        log_to_file: Also write ``logs/app.log`` (INFO and up) and
            ``logs/errors.log`` (ERROR and up), both rotating.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_to_file
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)

    if log_to_file:
        LOGS_DIR.mkdir(exist_ok=True)
        root.addHandler(_file_handler("app.log", logging.INFO, _CONSOLE_FORMAT, 10, 5))
        root.addHandler(_file_handler("errors.log", logging.ERROR, _ERROR_FORMAT, 5, 10))

    # Statement echo is far too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or "habitflow")


class RequestContext:
    """Per-request log fields, stored in structlog contextvars."""

    @staticmethod
    def set(**values: Any) -> None:
        structlog.contextvars.bind_contextvars(**values)

    @staticmethod
    def get() -> Dict[str, Any]:
        return structlog.contextvars.get_contextvars()

    @staticmethod
    def clear() -> None:
        structlog.contextvars.clear_contextvars()
