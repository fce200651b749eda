from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is importable as a module path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from core.db import dispose_engine
from core.models import Base
from core.repositories.memory import MemoryStorage
from core.repositories.sql import SqlStorage
from core.services import auth as auth_service
from core.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Every test starts from an in-memory database and default settings."""
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.delenv("SHIFTPAY_DEFAULT_PASSWORD", raising=False)
    monkeypatch.delenv("SHIFTPAY_TOKEN_HEADER", raising=False)
    reset_settings_cache()
    dispose_engine()
    yield
    dispose_engine()
    reset_settings_cache()


@pytest.fixture()
def session_factory():
    """Provide an isolated in-memory SQLite sessionmaker with the schema applied."""

    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_connection, _):
        dbapi_connection.execute("PRAGMA foreign_keys=ON;")

    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, future=True)
    engine.dispose()


@pytest.fixture()
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def sql_storage(session_factory):
    return SqlStorage(session_factory)


@pytest.fixture()
def memory_storage():
    return MemoryStorage()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Run a test against both storage backends."""
    if request.param == "memory":
        return MemoryStorage()
    return SqlStorage(request.getfixturevalue("session_factory"))


@pytest.fixture()
def seeded(storage):
    """Admin plus two workers, all with the default password."""
    admin = auth_service.add_user(storage, login="admin", name="Admin", is_admin=True, is_worker=False)
    anna = auth_service.add_user(storage, login="anna", name="Anna", pay=10.0, percent=10.0)
    boris = auth_service.add_user(storage, login="boris", name="Boris", pay=0.0, percent=20.0)
    return admin, anna, boris
