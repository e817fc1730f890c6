"""
Structured JSON logging for the practice backend.

Every log line is one JSON object on stdout carrying a channel
(http, db, evaluator, scoring, session, analytics), the current request ID
and any business context (session_id, user_id, ...) attached by the caller.
"""

import logging
import json
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from contextvars import ContextVar

from gateprep.config import LOG_LEVEL

# Request ID of the HTTP request currently being served, "" outside requests.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOGGER_PREFIX = "gateprep"
CHANNELS = ("http", "db", "evaluator", "scoring", "session", "analytics")


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a LogRecord as a single JSON document.

    Fields: timestamp (UTC, millisecond precision), level, message, channel,
    context (request_id merged with caller context) and extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        channel = getattr(record, "channel", None)
        if not channel:
            channel = record.name.rsplit(".", 1)[-1] if "." in record.name else "app"

        entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": channel,
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Install the JSON formatter on the root logger and set channel levels.

    Safe to call more than once; the root handler list is replaced, not
    appended to.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    resolved = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"{LOGGER_PREFIX}.{channel}").setLevel(resolved)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for one channel, e.g. get_logger("scoring")."""
    return logging.getLogger(f"{LOGGER_PREFIX}.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit one structured entry.

    Args:
        logger: Channel logger from get_logger()
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        message: Human-readable message
        context: Business identifiers (session_id, user_id, question_id)
        extra_data: Measurements and metadata (duration_ms, counts)
        exc_info: Attach the active exception traceback
    """
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        exc_info=exc_info,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.rsplit(".", 1)[-1]
        }
    )


@contextmanager
def timed():
    """
    Measure wall time of a block in milliseconds.

    Usage:
        with timed() as elapsed:
            ...
        elapsed()  # -> float ms, frozen once the block exits
    """
    start = time.perf_counter()
    result = {"ms": None}

    def elapsed() -> float:
        if result["ms"] is not None:
            return result["ms"]
        return round((time.perf_counter() - start) * 1000, 2)

    try:
        yield elapsed
    finally:
        result["ms"] = round((time.perf_counter() - start) * 1000, 2)


def generate_request_id() -> str:
    return str(uuid.uuid4())
