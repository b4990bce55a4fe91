"""
Structured logging for mintgate.

Every log line is a single JSON object (or a plain text line when
`observability.log_format` is `text`) carrying the correlation id of the
request being authorized, the operation name and, for rejections, the
error code.

    log = get_logger("authorizer")
    log.info("public_mint accepted", operation="public_mint", quantity=2)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mintgate.config import get_settings

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "mintgate_correlation_id", default=""
)

# Attributes MintLogger attaches to every LogRecord via `extra`.
_STRUCTURED_FIELDS = ("operation", "error_code", "duration_ms")


def record_to_dict(record: logging.LogRecord, formatter: logging.Formatter) -> Dict[str, Any]:
    """Flatten a LogRecord into the mintgate event shape, dropping empty fields."""
    event: Dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname.lower(),
        "logger": record.name,
        "message": record.getMessage(),
        "correlation_id": correlation_id_var.get(),
    }
    for name in _STRUCTURED_FIELDS:
        event[name] = getattr(record, name, None)
    event["context"] = getattr(record, "context", None)
    if record.exc_info:
        event["exception"] = formatter.formatException(record.exc_info)
    return {k: v for k, v in event.items() if v not in (None, "", {})}


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(record_to_dict(record, self), default=str)


class TextFormatter(logging.Formatter):
    """`time LEVEL logger [cid] message key=value ...`"""

    def format(self, record: logging.LogRecord) -> str:
        event = record_to_dict(record, self)
        parts = [event["timestamp"], event["level"].upper(), event["logger"]]
        if "correlation_id" in event:
            parts.append(f"[{event['correlation_id']}]")
        parts.append(event["message"])
        for name in _STRUCTURED_FIELDS:
            if name in event:
                parts.append(f"{name}={event[name]}")
        parts.extend(f"{k}={v}" for k, v in event.get("context", {}).items())
        line = " ".join(parts)
        if "exception" in event:
            line += "\n" + event["exception"]
        return line


class _MintgateHandler(logging.StreamHandler):
    """Marker type so repeated get_logger calls do not stack handlers."""


class MintLogger:
    """
    Thin wrapper over a stdlib logger under the `mintgate.` namespace.

    Keyword arguments other than operation / error_code / duration_ms /
    exc_info end up in the event's `context`.
    """

    def __init__(self, name: str, level: Optional[str] = None, stream: Any = None):
        settings = get_settings().observability
        self.name = name
        self._logger = logging.getLogger(f"mintgate.{name}")
        self._logger.setLevel((level or settings.log_level.get()).upper())
        self._logger.propagate = False

        formatter = TextFormatter() if settings.log_format.get() == "text" else JsonFormatter()
        existing = [h for h in self._logger.handlers if isinstance(h, _MintgateHandler)]
        if stream is not None or not existing:
            for handler in existing:
                self._logger.removeHandler(handler)
            handler = _MintgateHandler(stream)
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)
        else:
            for handler in existing:
                handler.setFormatter(formatter)

    def log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={
                "operation": operation,
                "error_code": error_code,
                "duration_ms": duration_ms,
                "context": context,
            },
        )

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)


def generate_correlation_id() -> str:
    return "corr-" + uuid.uuid4().hex[:12]


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Bind `correlation_id` to the current context; reset with the token."""
    return correlation_id_var.set(correlation_id)


def get_logger(name: str, stream: Any = None) -> MintLogger:
    return MintLogger(name, stream=stream)
