"""Engine and session management for the billing database."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from restroflow.core.config import get_config

logger = logging.getLogger(__name__)

config = get_config()
DATABASE_URL = config.DATABASE_URL

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # Invoices reference restaurants with ON DELETE RESTRICT; SQLite ignores it otherwise.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            echo=config.DEBUG and not config.is_production,
            connect_args={"check_same_thread": False},
        )
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(
        database_url,
        echo=config.DEBUG,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_size=10,
        max_overflow=20,
    )


def _configure_engine(database_url: str) -> None:
    global DATABASE_URL, engine, SessionLocal
    DATABASE_URL = database_url
    engine = _build_engine(database_url)
    # Services keep using invoices and restaurants after commit.
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


_configure_engine(DATABASE_URL)


def get_engine() -> Engine:
    return engine


def get_session_factory() -> sessionmaker:
    """Return the active sessionmaker; follows ``reset_engine``."""
    return SessionLocal


def get_active_database_url() -> str:
    return DATABASE_URL


def reset_engine(database_url: str | None = None) -> None:
    """Rebind engine and sessionmaker, e.g. for a one-off migration target."""
    engine.dispose()
    _configure_engine(database_url or DATABASE_URL)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session scope for workers and notification logging."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies."""
    with get_db_session() as db:
        yield db


def verify_database_connection() -> bool:
    """Run ``SELECT 1`` against the active engine."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception(
            "database.connection_failed",
            extra={"event": "database.connection_failed", "database_url_scheme": DATABASE_URL.split("://", 1)[0]},
        )
        return False
