"""Structured JSON logging for the Glam wardrobe app.

Every record carries the correlation id and the name of the operation it was
emitted from (``app.hydrate``, ``agent:orchestrator.generate`` and so on).
Emails, signed blob URLs, inline image data and raw image bytes never reach
the log stream.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import uuid
from typing import Any, Dict, Iterator, Optional

CORRELATION_ID: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)
CURRENT_OPERATION: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("operation", default=None)

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_KEYS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
_REDACT_KEYS = {
    "email",
    "full_name",
    "avatar_url",
    "image_url",
    "visualized_image_url",
    "description",
    "portrait",
}
_EMAIL_PATTERN = re.compile(r"[\w.\-]+@[\w.\-]+")
_URL_PATTERN = re.compile(r"(?:https?://|data:)\S+", re.IGNORECASE)


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        rendered = super().format(record)
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": rendered,
            "event": getattr(record, "event", record.getMessage()),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
            "operation": getattr(record, "operation", None) or CURRENT_OPERATION.get(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_KEYS and key not in payload:
                payload[key] = redact_for_log({key: value})[key]
        return json.dumps(payload)


def configure_logging(level: int | str | None = None) -> None:
    """Route the root logger through :class:`JsonFormatter`."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.root.handlers.clear()
    logging.basicConfig(level=level or os.getenv("LOG_LEVEL", "INFO"), handlers=[handler])


def _redact_string(value: str) -> str:
    masked = _EMAIL_PATTERN.sub("[redacted-email]", value)
    return _URL_PATTERN.sub("[redacted-url]", masked)


def redact_for_log(payload: Any) -> Any:
    """Recursively scrub PII, portrait references and image payloads."""

    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _redact_string(payload)
    if isinstance(payload, (bytes, bytearray)):
        return f"[{len(payload)} bytes]"
    if isinstance(payload, dict):
        return {
            key: "[redacted]" if key in _REDACT_KEYS else redact_for_log(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    return _redact_string(str(payload))


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Return the active correlation id, adopting ``correlation_id`` or minting one."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    minted = uuid.uuid4().hex
    CORRELATION_ID.set(minted)
    return minted


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    token = CORRELATION_ID.set(correlation_id or uuid.uuid4().hex)
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit ``event`` with redacted structured fields."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    operation = fields.pop("operation", None) or CURRENT_OPERATION.get()
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={
            "event": event,
            "correlation_id": correlation_id,
            "operation": operation,
            **redact_for_log(fields),
        },
    )


@contextlib.contextmanager
def operation_context(name: str, correlation_id: str | None = None) -> Iterator[str]:
    """Scope a correlation id and an operation name around one unit of work.

    Nested operations keep the caller's correlation id so one API request can
    be followed through the orchestrator and its collaborators.
    """

    operation_token = CURRENT_OPERATION.set(name)
    try:
        with correlation_context(correlation_id or CORRELATION_ID.get()) as scoped_id:
            logging.getLogger(__name__).debug("operation_started", extra={"operation": name})
            yield scoped_id
    finally:
        CURRENT_OPERATION.reset(operation_token)


__all__ = [
    "CORRELATION_ID",
    "CURRENT_OPERATION",
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "operation_context",
    "redact_for_log",
]
