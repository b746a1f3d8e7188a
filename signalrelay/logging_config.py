"""Structured logging configuration for SignalRelay."""

from __future__ import annotations

import json
import logging
import sys

from signalrelay.utils.time import utc_now

# Attributes callers attach via ``extra=`` that are rendered with the message.
CONTEXT_KEYS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "source_id",
    "handler_id",
)


def _context(record: logging.LogRecord) -> dict:
    return {key: getattr(record, key) for key in CONTEXT_KEYS if getattr(record, key, None) is not None}


class StructuredFormatter(logging.Formatter):
    """Human-readable ``[LEVEL] timestamp message key=value ...`` lines."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"[{record.levelname:<7}] {utc_now().isoformat()} {record.getMessage()}"
        pairs = " ".join(f"{key}={value}" for key, value in _context(record).items())
        if pairs:
            line = f"{line} {pairs}"
        if record.exc_info and record.exc_info[1]:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Attach one stdout handler to the root logger (once per process)."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt.lower() == "json" else StructuredFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
