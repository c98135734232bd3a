"""
Logging — Structured logging with session ID propagation.

Every record emitted while a session operation runs carries that session's
id, so a reviewer can follow one improvement loop through the log.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any


# Context variable for the session currently being handled
_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)


def set_session_id(sid: str | None) -> None:
    """Set session ID for current context."""
    _session_id.set(str(sid) if sid else None)


def get_session_id() -> str | None:
    """Get session ID from current context."""
    return _session_id.get()


class SessionFilter(logging.Filter):
    """Adds session_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = get_session_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON for structured logging.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session_id": getattr(record, "session_id", None),
        }

        # Add extra fields
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for interactive use.
    """

    def format(self, record: logging.LogRecord) -> str:
        sid = getattr(record, "session_id", "-")
        sid_short = sid[-8:] if sid and sid != "-" else "-"

        base = f"{record.levelname:<7} [{sid_short}] {record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
) -> None:
    """
    Configure designgate logging.

    Args:
        level: Logging level
        json_format: Use JSON format (for log shipping)
        stream: Output stream (default: stderr)
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(SessionFilter())

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter())

    root = logging.getLogger("designgate")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a designgate component."""
    return logging.getLogger(f"designgate.{name}")


class LogContext:
    """
    Context manager binding a session ID to log records.

    Usage:
        with LogContext(session.id):
            logger.info("Proposal accepted")  # Includes session_id
    """

    def __init__(self, session_id: str | None):
        self.session_id = session_id
        self._token = None

    def __enter__(self):
        self._token = _session_id.set(
            str(self.session_id) if self.session_id else None
        )
        return self

    def __exit__(self, *args):
        if self._token is not None:
            _session_id.reset(self._token)
