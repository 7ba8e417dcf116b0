"""Structured logging for the ledger service.

Provides:
  - JSON-formatted log output for staging and production
  - Human-readable colored output for development
  - Pool context (account, operation, snapshot) bound with :func:`log_context`
    and stamped onto every record by :class:`PoolContextFilter`
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Pool fields shown inline by the dev formatter, in this order.
_POOL_KEYS = ("account", "operation", "snapshot_id", "amount")

_EXTRA_KEYS = (
    "request_id",
    *_POOL_KEYS,
    "duration_ms",
    "status_code",
    "method",
    "path",
)

# ── Context binding ──────────────────────────────────────────────────────────

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("stakepool_log_context", default=None)


def get_log_context() -> dict[str, Any]:
    """Fields currently bound in this task / thread."""
    return dict(_log_context.get() or {})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every record logged inside the block.

    Nested blocks extend the outer binding; explicit ``extra=`` values on a
    log call still win.
    """
    token = _log_context.set({**get_log_context(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


class PoolContextFilter(logging.Filter):
    """Copy bound context onto records that don't already carry the field."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_log_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


# ── Formatters ───────────────────────────────────────────────────────────────


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in _EXTRA_KEYS if hasattr(record, key)}
        )

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Colored single-line formatter; pool fields trail the message."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[2m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{ts} [{record.levelname:>8s}]{self.RESET} {record.name}: "

        req_id = getattr(record, "request_id", None)
        if req_id:
            line += f"[{req_id[:8]}] "
        line += record.getMessage()

        fields = " ".join(
            f"{key}={getattr(record, key)}" for key in _POOL_KEYS if hasattr(record, key)
        )
        if fields:
            line += f" {self.DIM}{fields}{self.RESET}"

        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(env: str = "development", log_level: str = "INFO") -> None:
    """Configure root logging.

    Args:
        env: Application environment (development/staging/production)
        log_level: Minimum log level
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(PoolContextFilter())
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpcore", "httpx", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if env == "development" else logging.WARNING
    )
