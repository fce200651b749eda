from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.db import dispose_engine, init_database
from core.errors import ProtocolError
from core.protocol import parse_request
from core.repositories.base import Storage
from core.services.auth import extract_token
from core.services.dispatcher import RequestDispatcher
from core.settings import get_settings

from .database import get_dispatcher, get_storage, reset_storage
from .schemas import ApiResponse, ErrorResponse, HealthResponse, SimpleOkResponse

logger = logging.getLogger("shiftpay_api")


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    if settings.auto_apply_ddl:
        init_database(auto_apply_ddl=True)
    elif settings.enforce_alembic_migrations:
        init_database(auto_apply_ddl=False, enforce_alembic=True)
    else:
        logger.info("SHIFTPAY_AUTO_APPLY_DDL=0: skipping automatic DDL. Ensure Alembic migrations have been applied.")
    yield
    reset_storage()
    dispose_engine()


router = APIRouter()


def register_exception_handlers(target) -> None:
    def _wants_problem_json(request: Request) -> bool:
        accept = (request.headers.get("accept") or "").lower()
        return "application/problem+json" in accept

    def _request_id(request: Request) -> str:
        return request.headers.get("x-request-id") or ""

    def _problem(request: Request, status: int, code: str, detail: Any = None) -> JSONResponse:
        content = {
            "type": "about:blank",
            "title": HTTPStatus(status).phrase,
            "status": status,
            "code": code,
            "detail": detail if detail is not None else code,
            "instance": str(request.url.path),
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=status, content=jsonable_encoder(content), media_type="application/problem+json")

    async def protocol_error_handler(request: Request, exc: ProtocolError):
        if exc.user_error:
            status = 400
            logger.warning("user error %s", exc.code, extra={"error": exc.code, "status": status})
        else:
            status = 500
            logger.error("unknown error: %s", exc.detail, extra={"error": exc.code, "status": status})
        if _wants_problem_json(request):
            return _problem(request, status, exc.code)
        payload = ErrorResponse(error=exc.code, request_id=_request_id(request))
        return JSONResponse(status_code=status, content=payload.model_dump(exclude_none=True))

    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if _wants_problem_json(request):
            return _problem(request, exc.status_code, "http_error", exc.detail)
        payload = ErrorResponse(error=str(exc.detail or "error"), request_id=_request_id(request))
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(exclude_none=True))

    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        if _wants_problem_json(request):
            return _problem(request, 422, "validation_error", exc.errors())
        payload = {
            "ok": False,
            "error": "validation_error",
            "details": exc.errors(),
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=422, content=jsonable_encoder(payload))

    target.add_exception_handler(ProtocolError, protocol_error_handler)
    target.add_exception_handler(StarletteHTTPException, http_exception_handler)
    target.add_exception_handler(RequestValidationError, validation_exception_handler)


@router.get("/healthz", response_model=HealthResponse)
def healthz(storage: Storage = Depends(get_storage)):
    try:
        storage.get_user(id=0)
    except Exception as e:
        logger.error("health check failed: %s", e)
        raise HTTPException(status_code=500, detail="storage_unavailable")
    return {"ok": True, "status": "healthy", "version": get_settings().app_version}


@router.get("/livez", response_model=SimpleOkResponse)
def livez():
    return SimpleOkResponse()


@router.post("", response_model=ApiResponse)
def process_request(
    request: Request,
    body: Any = Body(...),
    dispatcher: RequestDispatcher = Depends(get_dispatcher),
    authorization: Optional[str] = Header(None),
):
    """Single RPC endpoint; the operation is chosen by ``body.op``."""
    try:
        parsed = parse_request(body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
    token = extract_token(request.headers.get(get_settings().token_header), authorization)
    result = dispatcher.process(parsed, token)
    return ApiResponse(data=result.model_dump(mode="json"))


def create_app() -> FastAPI:
    """API-only application (no static assets); see ``app.main`` for the host app."""
    application = FastAPI(title="shiftpay API", lifespan=lifespan)
    application.include_router(router, prefix="/api")
    register_exception_handlers(application)
    return application
