from __future__ import annotations

from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends

from core.repositories.base import Storage
from core.repositories.sql import SqlStorage
from core.services.dispatcher import RequestDispatcher
from core.settings import get_settings

# Load .env for local runs
load_dotenv()

_storage: Optional[Storage] = None


def get_storage() -> Storage:
    """Process-wide storage sharing the engine's connection pool."""
    global _storage
    if _storage is None:
        _storage = SqlStorage()
    return _storage


def reset_storage() -> None:
    global _storage
    _storage = None


def get_dispatcher(storage: Storage = Depends(get_storage)) -> RequestDispatcher:
    return RequestDispatcher(storage, default_password=get_settings().default_password)
