from __future__ import annotations

import uuid
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging_utils import maybe_enable_json_logging, set_request_id
from core.observability import init_sentry
from core.settings import get_settings
from shiftpay_api.main import lifespan as api_lifespan, router as api_router
from shiftpay_api.main import register_exception_handlers as register_api_exception_handlers

NOT_FOUND_PAGE = "not_found.html"


class AssetFiles(StaticFiles):
    """Static files with ``not_found.html`` served for unknown paths."""

    async def get_response(self, path: str, scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as exc:
            fallback = Path(str(self.directory)) / NOT_FOUND_PAGE
            if exc.status_code == 404 and fallback.is_file():
                return FileResponse(fallback, status_code=404)
            raise


def _resolve_assets_dir() -> Path:
    configured = Path(get_settings().assets_dir)
    if configured.is_absolute():
        return configured
    return Path(__file__).resolve().parents[1] / configured


def create_app() -> FastAPI:
    # Optional observability wiring (no-op if not configured)
    maybe_enable_json_logging()
    init_sentry()
    application = FastAPI(title="shiftpay", version=get_settings().app_version, lifespan=api_lifespan)

    application.include_router(api_router, prefix="/api")
    register_api_exception_handlers(application)

    @application.middleware("http")
    async def request_id_middleware(request, call_next):
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        set_request_id(rid)
        resp = await call_next(request)
        resp.headers["X-Request-ID"] = rid
        return resp

    @application.middleware("http")
    async def security_headers(request, call_next):
        resp = await call_next(request)
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith("/api"):
            resp.headers.setdefault("Cache-Control", "no-store")
        return resp

    # Mounted last: "/" matches every path the API did not claim
    assets_dir = _resolve_assets_dir()
    if assets_dir.is_dir():
        application.mount("/", AssetFiles(directory=str(assets_dir), html=True), name="assets")

    return application


app = create_app()
