"""
Structured logging for the scheduling engine.

Every record is a single JSON object. ``bind`` returns a child logger that
stamps the same context (owner, task) onto each record it writes.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json

from timeblock.config import LOG_LEVEL


class StructuredLogger:
    """JSON-line logger with optional bound context."""

    def __init__(self, name: str, level: int = logging.INFO, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.context = dict(context or {})

        # Handlers are shared per logger name, so bound children add none
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Child logger whose records always carry ``context``."""
        return StructuredLogger(self.logger.name, self.logger.level, {**self.context, **context})

    def _emit(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            "logger": self.logger.name,
            **self.context,
            **fields,
        }
        # default=str keeps datetimes and enums serializable
        self.logger.log(level, json.dumps(record, default=str))

    def debug(self, event: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit(logging.ERROR, event, fields)


def get_logger(name: str) -> StructuredLogger:
    """Logger for ``name`` at the configured LOG_LEVEL."""
    return StructuredLogger(name, logging.getLevelName(LOG_LEVEL))
