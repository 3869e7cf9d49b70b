"""
Structured logging for the marketplace core.

- One named logger, ``trainerhub``: JSON lines in production, one readable line otherwise.
- Two context variables travel with each request or screen action: the request id
  and the acting principal's id. A filter stamps both onto every record.
- ``log_event`` is the helper services use; it names the entity a record is about
  (post, plan, trainer) and truncates free-form extras.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "trainerhub"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[Optional[str]] = ContextVar("principal_id", default=None)

# Attributes every LogRecord has; anything else on a record came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Emitted first and in this order by both formatters
CONTEXT_FIELDS = ("request_id", "user_id", "post_id", "plan_id", "trainer_id", "event_type", "error_code")

EXTRA_LIMIT = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def bind_principal(user_id: Optional[str]) -> Token:
    """Attribute records logged from the current context to ``user_id``."""
    return principal_ctx_var.set(user_id)


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


def _fields(record: logging.LogRecord) -> Dict[str, object]:
    """Context fields first, then any other extras, skipping empty values."""
    fields: Dict[str, object] = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key in fields or key.startswith("_") or value is None:
            continue
        fields[key] = value
    return fields


class ContextFilter(logging.Filter):
    """Fill request_id and user_id from the context when the call site did not."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_ctx_var.get()
        if getattr(record, "user_id", None) is None:
            record.user_id = principal_ctx_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    """``<ts> LEVEL [trainerhub] [rid=..] [user=..] [code] message key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        fields = _fields(record)
        parts = [_timestamp(record), record.levelname, f"[{LOGGER_NAME}]"]
        rid = fields.pop("request_id", None)
        if rid:
            parts.append(f"[rid={rid}]")
        user = fields.pop("user_id", None)
        if user:
            parts.append(f"[user={user}]")
        code = fields.pop("error_code", None)
        if code:
            parts.append(f"[{code}]")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in fields.items())
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development") -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(ContextFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # httpx logs every BaaS round trip at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _truncate(value: object, limit: int = EXTRA_LIMIT) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    post_id: Optional[str] = None,
    plan_id: Optional[str] = None,
    trainer_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Log ``msg`` with entity context; ``extra`` values are stringified and truncated."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        # Headless use (screens, scripts) may never have configured logging
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or request_id_ctx_var.get(),
        "user_id": user_id or principal_ctx_var.get(),
        "post_id": post_id,
        "plan_id": plan_id,
        "trainer_id": trainer_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key if key not in _RECORD_ATTRS else f"x_{key}"] = _truncate(value)

    getattr(logger, level, logger.info)(msg, extra=fields)
