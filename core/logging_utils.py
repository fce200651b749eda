from __future__ import annotations

import json
import logging
import os
import re
from contextvars import ContextVar
from typing import Any, Optional

_SECRET_FIELD = re.compile(r"""(["']?(?:password|old_password|new_password|token|p-token)["']?\s*[:=]\s*)(["']?)[^\s"',}]+""", re.IGNORECASE)
_UUID = re.compile(r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE)


def scrub(text: str) -> str:
    """Mask credentials and session tokens in a log line."""
    t = _SECRET_FIELD.sub(lambda m: f"{m.group(1)}{m.group(2)}***", text or "")
    return _UUID.sub(lambda m: m.group(0)[:8] + "-****", t)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": scrub(record.getMessage()),
        }
        if record.exc_info:
            data["exc_info"] = scrub(self.formatException(record.exc_info))  # type: ignore[arg-type]
        rid = get_request_id()
        if rid and not hasattr(record, "request_id"):
            data["request_id"] = rid
        op = _OPERATION.get()
        if op and not hasattr(record, "op"):
            data["op"] = op
        for key in ("request_id", "op", "error", "status"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        return json.dumps(data, ensure_ascii=False)


def configure_json_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    # Remove other handlers to avoid duplicate logs
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)


def maybe_enable_json_logging() -> bool:
    if (os.environ.get("JSON_LOGS") or "").strip().lower() in {"1", "true", "yes", "on"}:
        configure_json_logging()
        return True
    return False


# Request-scoped context helpers
_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
# Protocol operation being dispatched, e.g. "set_workday"
_OPERATION: ContextVar[Optional[str]] = ContextVar("operation", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    _REQUEST_ID.set(request_id)


def get_request_id() -> Optional[str]:
    return _REQUEST_ID.get()


def set_operation(op: Optional[str]) -> None:
    _OPERATION.set(op)
