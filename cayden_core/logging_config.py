"""
Structured logging.

Every module logs through logging.getLogger(__name__), so all
records land under the "cayden_core" logger configured here.
Records are emitted as one JSON object per line.
"""

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER = "cayden_core"

# Context fields services attach through `extra=`
CONTEXT_FIELDS = ("action", "user_id", "account_id", "transaction_id")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Install the JSON handler on the package logger.

    Safe to call more than once: existing handlers are replaced
    rather than stacked.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger
