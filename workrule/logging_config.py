"""Structured logging for the WorkRule engine."""

__all__ = [
    "StructuredFormatter",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

_LOGGER_PREFIX = "workrule"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle datetime and Decimal in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Fields passed through extra=
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: Optional[int] = None,
    json_output: Optional[bool] = None,
    stream: Any = None,
) -> logging.Handler:
    """
    Install one handler on the workrule logger hierarchy (idempotent).

    Level and format default to the WORKRULE_LOG_LEVEL / WORKRULE_LOG_JSON
    settings.
    """
    global _configured
    from workrule.config import get_settings

    settings = get_settings()
    if level is None:
        level = logging.getLevelName(settings.log_level.upper())
    if json_output is None:
        json_output = settings.log_json

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        if _configured and root_logger.handlers:
            return root_logger.handlers[0]
        _configured = True

        handler = logging.StreamHandler(stream or sys.stderr)
        if json_output:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
        root_logger.setLevel(level)
        root_logger.addHandler(handler)
    return handler


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
