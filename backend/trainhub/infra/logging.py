"""JSON log lines with employee personal data masked.

Each record becomes one JSON object: fixed keys first, then the bound log
context, then the record's ``extra`` payload. Employee identity fields are
masked by key and email addresses are masked wherever they occur in text.
"""

import contextvars
import json
import logging
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, TextIO

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
EMAIL_MASK = "[REDACTED_EMAIL]"
FIELD_MASK = "[REDACTED]"
EMPLOYEE_PII_FIELDS = frozenset({"email", "first_name", "last_name", "full_name", "employee_name"})

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "trainhub_log_context", default={}
)
# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def redact_text(value: str) -> str:
    return EMAIL_RE.sub(EMAIL_MASK, value)


def mask_fields(value: Any, key: str | None = None) -> Any:
    if key is not None and key.lower() in EMPLOYEE_PII_FIELDS:
        return FIELD_MASK
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {item_key: mask_fields(item, item_key) for item_key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [mask_fields(item) for item in value]
    return value


def _bound(fields: dict[str, Any]) -> dict[str, Any]:
    return {**_log_context.get(), **{key: value for key, value in fields.items() if value is not None}}


def update_log_context(**fields: Any) -> dict[str, Any]:
    merged = _bound(fields)
    _log_context.set(merged)
    return merged


def clear_log_context() -> None:
    _log_context.set({})


def current_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Bind ``fields`` for the duration of the block, then restore the outer context."""
    token = _log_context.set(_bound(fields))
    try:
        yield _log_context.get()
    finally:
        _log_context.reset(token)


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    payload = fields.pop("extra", None)
    if isinstance(payload, dict):
        fields.update(payload)
    return fields


class RedactingJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_text(record.getMessage()),
        }
        entry.update(mask_fields(_log_context.get()))
        entry.update(mask_fields(_record_fields(record)))
        if record.exc_info:
            entry["exc_info"] = redact_text(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", *, stream: TextIO | None = None) -> None:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(RedactingJsonFormatter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
