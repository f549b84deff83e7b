"""
Logging setup for the event scheduler backend.

Four named loggers live under the ``event_scheduler`` namespace:

- api: request handling and exception handlers
- services: profile/event writes, skipped no-op updates
- db: connectivity failures and database errors
- views: server-rendered client pages

Development and test runs log human-readable lines to stdout. Production
(EVSCHED_ENV=production) writes one JSON object per line into a rotating
file per logger under EVSCHED_LOG_DIR.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from backend.src.config.settings import AppSettings, get_settings


LOGGER_NAMESPACE = "event_scheduler"
LOGGER_NAMES = ("api", "services", "db", "views")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Attributes every LogRecord has; anything else arrived through extra={...}
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime"
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: timestamp (UTC, from the record's creation time), level, logger,
    message, module, function, line; "exception" when exc_info is set; and
    every ``extra`` field (non-serializable values go through str()).
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in payload
        )
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """[2025-06-01 10:30:45] INFO - event_scheduler.api - Retrieved 3 events"""

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _build_handler(name: str, settings: AppSettings) -> logging.Handler:
    if settings.is_production:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter())
    return handler


def configure_logging(settings: Optional[AppSettings] = None) -> Dict[str, logging.Logger]:
    """
    (Re)configure every named logger.

    Existing handlers are replaced, so calling this twice does not
    duplicate output.

    Returns:
        Mapping of short name ("api", ...) to Logger
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    loggers = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
        logger.setLevel(level)
        logger.propagate = False
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        handler = _build_handler(name, settings)
        handler.setLevel(level)
        logger.addHandler(handler)
        loggers[name] = logger
    return loggers


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Get one of the named loggers, configuring logging on first use.

    Raises:
        ValueError: If ``name`` is not one of LOGGER_NAMES

    Example:
        >>> logger = get_logger("services")
        >>> logger.info("Created event", extra={"event_guid": "evt_..."})
    """
    global _loggers
    if _loggers is None:
        _loggers = configure_logging()
    try:
        return _loggers[name]
    except KeyError:
        raise ValueError(
            f"Unknown logger name: {name}. Valid names: {', '.join(LOGGER_NAMES)}"
        ) from None


def init_logging() -> Dict[str, logging.Logger]:
    """Configure logging at application startup."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
