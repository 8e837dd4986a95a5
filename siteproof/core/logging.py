"""structlog setup shared by the web app, the CLI and the migration scripts.

Environment:
    LOG_LEVEL   root level (default INFO)
    JSON_LOGS   "true" renders JSON lines instead of the console renderer
    LOG_FILE    optional file that receives a copy of every record
    DB_ECHO     "true" keeps SQLAlchemy engine logging at INFO
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

SERVICE_NAME = "siteproof"

# Libraries whose INFO output drowns out request logs
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")

_configured = False


def add_service(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _handlers() -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = os.getenv("LOG_FILE")
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    return handlers


def configure_logging(force: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Later calls are no-ops unless ``force`` is set (tests use it after
    changing the environment).
    """
    global _configured
    if _configured and not force:
        return

    json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
    level = os.getenv("LOG_LEVEL", "INFO").upper()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors += [add_service, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", handlers=_handlers(), level=level, force=force)

    echo_sql = os.getenv("DB_ECHO", "false").lower() == "true"
    for name in QUIET_LOGGERS:
        if name == "sqlalchemy.engine" and echo_sql:
            continue
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLevelName(level)))

    _configured = True
