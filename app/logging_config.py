"""
JSON logging for the ebeef API.

One JSON object per line on stdout. Structured fields go through
`extra={"context": {...}}`; customer phone numbers in the context are masked.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PHONE_CONTEXT_KEYS = frozenset({"phone", "phone_number", "to", "from"})

# Loggers that install their own handlers; they are re-pointed at the root JSON handler.
_THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def mask_phone(value: Any) -> Any:
    """5511999991234 -> 5511*****1234"""
    if not isinstance(value, str) or len(value) <= 8:
        return value
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


def _masked_context(context: dict) -> dict:
    return {key: mask_phone(value) if key in PHONE_CONTEXT_KEYS else value for key, value in context.items()}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            log_data["context"] = _masked_context(context)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimal totals and datetimes end up in contexts.
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in _THIRD_PARTY_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers.clear()
        third_party.propagate = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"ebeef.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """
    Binds a fixed context (phone number, message id) to every record.

    A per-call `context=` kwarg is merged over the bound one.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        if context or self.extra:
            kwargs["extra"] = {"context": {**self.extra, **(context or {})}}
        return msg, kwargs
