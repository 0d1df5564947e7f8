"""JSON logging configuration for the NagarSeva API.

One JSON object per line. Chat and ticket identifiers from the record context are
lifted to top-level keys so a single complaint can be followed across webhook
deliveries; Telegram bot tokens are masked wherever they appear.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "nagarseva-api"

# Keys promoted from ``context`` to the top level of each line.
TRACE_FIELDS = ("chat_id", "update_id", "ticket_number")

# Bot API URLs embed the token: https://api.telegram.org/bot<id>:<secret>/sendMessage
_BOT_TOKEN = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
REDACTED_TOKEN = "bot<redacted>"

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def redact_secrets(text: str) -> str:
    return _BOT_TOKEN.sub(REDACTED_TOKEN, text)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": redact_secrets(record.getMessage()),
        }

        context = getattr(record, "context", None)
        if context:
            remaining = dict(context)
            for key in TRACE_FIELDS:
                if key in remaining:
                    log_data[key] = remaining.pop(key)
            if remaining:
                log_data["context"] = remaining

        if record.exc_info:
            log_data["exception"] = redact_secrets(self.formatException(record.exc_info))

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure JSON logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"nagarseva.{name}")


class ChatLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with the chat and update it belongs to.

    Call sites add per-event fields with ``context={...}``; those win over the
    adapter's own fields on key clashes.
    """

    def __init__(self, logger: logging.Logger, chat_id: str, update_id: Optional[int] = None):
        extra = {"chat_id": chat_id}
        if update_id is not None:
            extra["update_id"] = update_id
        super().__init__(logger, extra)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None) or {}
        kwargs["extra"] = {"context": {**self.extra, **context}}
        return msg, kwargs
