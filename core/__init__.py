from . import models  # re-export module for convenience
from .db import (
    dispose_engine,
    get_engine,
    get_sessionmaker,
    init_database,
    session_scope,
)
from .settings import get_settings, reset_settings_cache

__all__ = [
    "models",
    "get_settings",
    "reset_settings_cache",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
    "dispose_engine",
    "init_database",
]
