from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .alembic_utils import ensure_up_to_date
from .models import Base
from .settings import get_settings

# The only process-wide state: one engine (and its pool) plus its sessionmaker
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


logger = logging.getLogger("shiftpay_core.db")


def _resolve_database_url() -> str:
    settings = get_settings()
    if settings.database_url:
        return settings.database_url
    # Local development falls back to instance/shiftpay.db next to the code
    db_path = Path(__file__).resolve().parents[1] / "instance" / "shiftpay.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _engine_options(url: URL) -> dict:
    if url.get_backend_name() != "sqlite":
        # Fixed-size pool; requests wait for a free connection instead of opening more
        return {"pool_size": get_settings().db_pool_size, "max_overflow": 0, "pool_pre_ping": True}
    options: dict = {"connect_args": {"check_same_thread": False}}
    if _is_memory_sqlite(url):
        # Every thread must see the same in-memory database
        options["poolclass"] = StaticPool
    return options


def _install_sqlite_pragmas(engine: Engine, url: URL) -> None:
    wal = not _is_memory_sqlite(url)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[unused-argument]
        cursor = dbapi_connection.cursor()
        try:
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
        finally:
            cursor.close()


def get_engine(echo: bool = False) -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        url = make_url(_resolve_database_url())
        _engine = create_engine(url, echo=echo, future=True, **_engine_options(url))
        if url.get_backend_name() == "sqlite":
            _install_sqlite_pragmas(_engine, url)
            logger.warning("Using the SQLite backend; PostgreSQL is recommended for production.")
        else:
            logger.info("engine ready: %s (pool_size=%s)", url.render_as_string(), get_settings().db_pool_size)
    return _engine


def get_sessionmaker() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(), future=True)
    return _SessionLocal


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """One transaction: commit on success, roll back on any exception."""
    session = (factory or get_sessionmaker())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(auto_apply_ddl: Optional[bool] = None, enforce_alembic: Optional[bool] = None) -> Engine:
    """Prepare the schema according to settings and return the engine.

    ``auto_apply_ddl`` creates missing tables from the models; otherwise
    ``enforce_alembic`` refuses to continue unless migrations are at head.
    """
    engine = get_engine()
    settings = get_settings()

    auto = settings.auto_apply_ddl if auto_apply_ddl is None else auto_apply_ddl
    enforce = settings.enforce_alembic_migrations if enforce_alembic is None else enforce_alembic

    if auto:
        Base.metadata.create_all(bind=engine)
    elif enforce:
        ensure_up_to_date(engine)

    return engine


def dispose_engine() -> None:
    """Close pooled connections and forget the singletons (shutdown/tests)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
