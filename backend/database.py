"""Database configuration for the budgeting backend.

Budget writes produced by one engine result (the budget row and, when
present, its parent row) share a single session and are committed together
by :func:`session_scope`.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from budgetree.engine.logging import setup_logger

logger = setup_logger("budgetree.backend.database")

DEFAULT_SQLITE_PATH = os.environ.get("BUDGETREE_DB_PATH", os.path.join(os.path.dirname(__file__), "budgetree.db"))
DATABASE_URL = os.environ.get("BUDGETREE_DATABASE_URL", f"sqlite:///{DEFAULT_SQLITE_PATH}")


def make_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine, enabling SQLite foreign keys so cascades apply."""

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    created = create_engine(url, future=True, **kwargs)
    if url.startswith("sqlite"):
        event.listen(created, "connect", _enable_sqlite_foreign_keys)
    return created


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

Base = declarative_base()


def init_db() -> None:
    """Create database tables if they do not already exist."""
    from . import models  # noqa: F401  # registers the tables on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info("Database ready at %s", DATABASE_URL)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit the whole unit of work, or roll all of it back."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("Rolled back transaction")
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency that provides a database session."""
    with session_scope() as session:
        yield session
