"""Structured logging for search requests.

Each API request (and each CLI search) runs under one correlation ID held in
a ContextVar, so every line logged while the pipeline awaits the datastore
and the language model carries the same ID. JSON output is for deployed
services; the text format is for a terminal.
"""

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Search context passed as logger.info(..., extra={...})
SEARCH_FIELDS = ("query", "jurisdiction", "step", "result_count", "duration_ms")

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "mlflow")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"


def get_correlation_id() -> str:
    """Return the current correlation ID, or empty string if not set."""
    return correlation_id.get()


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Run a block under ``cid`` (or a fresh UUID), restoring the previous ID after."""
    cid = cid or str(uuid.uuid4())
    token = correlation_id.set(cid)
    try:
        yield cid
    finally:
        correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the active correlation ID for %-style formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, search context fields included when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = correlation_id.get()
        if cid:
            entry["correlation_id"] = cid
        entry.update({
            key: getattr(record, key)
            for key in SEARCH_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Replace the root handlers with one stream handler.

    Args:
        json_format: JSON lines when True, TEXT_FORMAT otherwise.
        level: Root log level name; unknown names mean INFO.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
