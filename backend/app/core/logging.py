"""
Logging setup: readable text for development, one JSON object per line
when LOG_FORMAT=json. Every record carries a correlation id ("system"
outside of a request).
"""
import os
import sys
import json
import logging
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, Dict, Optional

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s"

# LogRecord attributes that are not user-supplied extras
_RESERVED = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime', 'correlation_id'}


class CorrelationIdFilter(logging.Filter):
    """Ensure correlation_id is present in log records."""

    def filter(self, record):
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "system"
        return True


class JSONFormatter(logging.Formatter):
    """Structured formatter: timestamp, level, message, location, extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
            "correlation_id": getattr(record, "correlation_id", "system"),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    LOG_FORMAT selects 'json' or 'text' (default); the level comes from
    the argument, then LOG_LEVEL, then INFO.
    """
    log_format = os.getenv('LOG_FORMAT', 'text').lower()
    log_level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    formatter: Dict[str, Any] = {"()": JSONFormatter} if log_format == 'json' else {"format": TEXT_FORMAT}

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation_id": {"()": CorrelationIdFilter},
        },
        "formatters": {
            "default": formatter,
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["correlation_id"],
                "stream": sys.stdout,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    })

    # Reduce noise from third-party libraries
    for name in ('uvicorn.access', 'httpx', 'httpcore', 'groq'):
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_format == 'json':
        logging.getLogger(__name__).info("Structured JSON logging enabled")
