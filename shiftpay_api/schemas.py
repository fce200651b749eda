from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool
    status: Optional[str] = None
    version: Optional[str] = None


class SimpleOkResponse(BaseModel):
    ok: bool = True


class ApiResponse(BaseModel):
    ok: bool = True
    data: dict[str, Any]


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    detail: Optional[str] = None
    request_id: str = ""
