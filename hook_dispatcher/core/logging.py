"""Structured logging for the dispatcher.

Records carry the component name and, while a message is being dispatched,
its topic/partition/offset. Header and credential fields are redacted before
anything is written.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from hook_dispatcher.core.config import COMPONENT_NAME, LogSettings

REDACTED = "[REDACTED]"

# Webhook secrets and broker credentials; matched case-insensitively.
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "token",
        "secret",
        "password",
        "sasl_password",
        "sasl.password",
        "x-hub-signature",
        "x-hub-signature-256",
        "x-gitee-token",
        "x-gitlab-token",
        "payload",
    }
)

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_message_context: ContextVar[dict[str, Any] | None] = ContextVar("message_context", default=None)


def set_message_context(**fields: Any) -> None:
    """Attach delivery metadata to logs emitted from the current thread."""
    _message_context.set(dict(fields))


def get_message_context() -> dict[str, Any]:
    return dict(_message_context.get() or {})


def clear_message_context() -> None:
    _message_context.set(None)


def redact(value: Any, sensitive_keys: frozenset[str] = SENSITIVE_KEYS) -> Any:
    """Replace values stored under sensitive keys, descending into containers."""
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in sensitive_keys else redact(item, sensitive_keys)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item, sensitive_keys) for item in value)
    return value


def record_extras(record: LogRecord, sensitive_keys: frozenset[str] = SENSITIVE_KEYS) -> dict[str, Any]:
    """Return the caller-supplied fields of a record, already redacted."""
    extras = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    return redact(extras, sensitive_keys)


def _normalize_keys(keys: Iterable[str] | None) -> frozenset[str]:
    return frozenset(key.lower() for key in keys) if keys else SENSITIVE_KEYS


class MessageContextFilter(logging.Filter):
    """Copy the current message context onto records that lack those fields."""

    def filter(self, record: LogRecord) -> bool:
        for key, value in get_message_context().items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class ComponentFilter(logging.Filter):
    def __init__(self, component: str = COMPONENT_NAME) -> None:
        super().__init__()
        self.component = component

    def filter(self, record: LogRecord) -> bool:
        if getattr(record, "component", None) is None:
            record.component = self.component
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact extra fields in place so any formatter sees safe values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = _normalize_keys(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:
        for key, value in record_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, then extras."""

    def __init__(self, *, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = _normalize_keys(sensitive_keys)

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_extras(record, self.sensitive_keys))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _open_handler(cfg: LogSettings) -> logging.Handler:
    if cfg.output != "file":
        return logging.StreamHandler(sys.stdout)

    path = Path(cfg.file_path or "logs/hook-dispatcher.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    if cfg.max_bytes:
        return RotatingFileHandler(
            path, maxBytes=cfg.max_bytes, backupCount=cfg.backup_count, encoding="utf-8"
        )
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None, *, debug: bool = False) -> None:
    """Install the dispatcher's handler on the root logger.

    Args:
        log_settings: Output, format and level; read from ``LOG_*`` when omitted.
        debug: Force DEBUG regardless of the configured level.
    """
    cfg = log_settings or LogSettings()
    level = logging.DEBUG if debug else getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _open_handler(cfg)
    handler.addFilter(ComponentFilter(cfg.component))
    handler.addFilter(MessageContextFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(component)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
