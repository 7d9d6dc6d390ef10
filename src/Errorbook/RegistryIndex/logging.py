"""
Structured logging helpers for the registry index tools.

Rebuilds, coverage runs, and validations emit JSON log lines on stderr so the
machine-readable reports printed on stdout stay clean. Loggers are wrapped in
:class:`StructuredLogger`, which carries persistent context (``stage``,
``bucket``...) into every record through the ``extra_fields`` convention that
:class:`JSONFormatter` flattens into the payload.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

__all__ = ["JSONFormatter", "StructuredLogger", "get_logger", "log_event"]


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string merged with its ``extra_fields``."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that enriches structured logs with shared context."""

    def __init__(
        self, logger: logging.Logger, base_fields: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(logger, {})
        self.base_fields: Dict[str, Any] = dict(base_fields or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        """Merge adapter context into ``extra`` metadata for structured output."""

        extra = kwargs.setdefault("extra", {})
        fields = dict(self.base_fields)
        extra_fields = extra.get("extra_fields")
        if isinstance(extra_fields, dict):
            fields.update(extra_fields)
        extra["extra_fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **fields: object) -> "StructuredLogger":
        """Attach additional persistent fields to the adapter and return ``self``."""

        self.base_fields.update({k: v for k, v in fields.items() if v is not None})
        return self


def get_logger(
    name: str, level: Optional[str] = None, *, base_fields: Optional[Dict[str, Any]] = None
) -> StructuredLogger:
    """Get a structured JSON logger writing to stderr.

    ``level`` is applied only when given, so library modules can fetch their
    logger at import time and let the CLI decide verbosity later.
    """

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    if level is not None:
        logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    adapter = getattr(logger, "_registry_index_adapter", None)
    if not isinstance(adapter, StructuredLogger):
        adapter = StructuredLogger(logger, base_fields)
        setattr(logger, "_registry_index_adapter", adapter)
    elif base_fields:
        adapter.bind(**base_fields)
    return adapter


def log_event(logger: logging.LoggerAdapter | logging.Logger, level: str, message: str, **fields: object) -> None:
    """Emit a structured log record using the ``extra_fields`` convention."""

    normalised_level = str(level).lower()
    if "stage" not in fields:
        base_stage = getattr(logger, "base_fields", {}).get("stage")
        if base_stage is not None:
            fields["stage"] = base_stage
    emitter = getattr(logger, normalised_level, None)
    if not callable(emitter):
        raise AttributeError(f"Logger has no level '{level}'")
    emitter(message, extra={"extra_fields": fields})
