"""Structured logging for the chatbot engine.

Every record is one JSON line on stdout. Call sites attach structured fields
with ``extra={"context": {...}}`` or through a ``ContextLogger`` that carries
the chatbot/sender being processed.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

NAMESPACE = "chatbot"

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "redis")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
            entry["location"] = f"{record.module}:{record.lineno}"

        # UUIDs and datetimes in context are rendered with str()
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", debug_sql: bool = False) -> None:
    """Install the JSON handler on the root logger, replacing any existing handlers."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug_sql else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{NAMESPACE}.{name}")


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that stamps bound fields (chatbot id, sender, ...) on every record.

    A per-call ``context=`` keyword adds to, and overrides, the bound fields.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        call_context: Optional[dict] = kwargs.pop("context", None)
        merged = {**(self.extra or {}), **(call_context or {})}
        if merged:
            kwargs["extra"] = {**kwargs.get("extra", {}), "context": merged}
        return msg, kwargs


def bind(logger: logging.Logger, **context: Any) -> ContextLogger:
    return ContextLogger(logger, context)
