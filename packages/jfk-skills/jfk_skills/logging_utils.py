"""Logging setup for the skills CLI."""
from __future__ import annotations

import logging
import os
from typing import Optional

MAX_ARG_CHARS = 500

_configured = False


class TruncatingFilter(logging.Filter):
    """Cut long string arguments (request bodies, base64 images) in log records."""

    def __init__(self, limit: int = MAX_ARG_CHARS, name: str = "") -> None:
        super().__init__(name)
        self._limit = limit

    def _clip(self, value: object) -> object:
        if isinstance(value, str) and len(value) > self._limit:
            return f"{value[:self._limit]}...[{len(value) - self._limit} chars truncated]"
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._clip(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._clip(arg) for arg in record.args)
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """Install one root handler; level from the argument, LOG_LEVEL, or INFO."""
    global _configured
    if _configured:
        return
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(TruncatingFilter())
    _configured = True
