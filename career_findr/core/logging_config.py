"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import datetime, timezone

from career_findr.core.config import get_settings


class JSONFormatter(logging.Formatter):
    """Outputs log records as single-line JSON."""

    # Structured fields passed through `extra=`
    EXTRA_FIELDS = ("user_id", "collection", "announcement_id", "chat_id", "sequence", "recipients")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    """Configure root logger with JSON formatter."""
    level = get_settings().log_level.upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
