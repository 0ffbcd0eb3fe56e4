"""Logging setup for the chat app.

Provides:
- ``set_session_id`` to tag log records with the chat session being served
- ``JSONFormatter`` to render logs as single-line JSON
- ``configure_logging`` to install the formatter on stdout
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Optional, Union

_session_id: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


def set_session_id(sid: Optional[str]) -> None:
    """Set or clear the chat session id attached to log records."""
    _session_id.set(sid)


class JSONFormatter(logging.Formatter):
    """Format log records as compact JSON with timestamp and optional session id."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": round(time.time(), 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        sid = _session_id.get()
        if sid:
            base["session_id"] = sid
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: Union[int, str] = "INFO") -> logging.Logger:
    """Configure root logging to stdout with the JSON formatter.

    Returns the ``sgu_chat`` package logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("sgu_chat")
