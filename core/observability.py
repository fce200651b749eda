from __future__ import annotations

import os
from typing import Any, Optional

from .logging_utils import scrub

_REDACTED_HEADERS = {"authorization", "cookie", "set-cookie", "p-token"}


def _before_send(event: dict[str, Any], hint: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop session tokens and passwords before an event leaves the process."""
    req = event.get("request") or {}
    hdrs = req.get("headers") or {}
    for k in list(hdrs.keys()):
        if str(k).lower() in _REDACTED_HEADERS:
            hdrs[k] = "[redacted]"
    if isinstance(req.get("data"), str):
        req["data"] = scrub(req["data"])
    elif isinstance(req.get("data"), dict):
        for key in ("password", "old_password", "new_password"):
            if key in req["data"]:
                req["data"][key] = "[redacted]"
    req["headers"] = hdrs
    event["request"] = req
    return event


def init_sentry() -> Optional[object]:
    """Initialize Sentry if SENTRY_DSN is set and sentry_sdk is installed.

    Returns the sentry SDK module when initialized, otherwise None.
    """
    dsn = (os.environ.get("SENTRY_DSN") or "").strip()
    if not dsn:
        return None
    try:
        import sentry_sdk  # type: ignore
        from sentry_sdk.integrations.starlette import StarletteIntegration  # type: ignore
    except ImportError:
        return None

    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=float(os.environ.get("SENTRY_TRACES_SAMPLE_RATE", "0.0") or 0.0),
        environment=os.environ.get("SENTRY_ENV") or os.environ.get("ENV") or "dev",
        integrations=[StarletteIntegration()],
        before_send=_before_send,
    )
    return sentry_sdk
