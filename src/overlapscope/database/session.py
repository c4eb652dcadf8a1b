"""Database session management for overlapscope."""

import os
import threading

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from overlapscope.constants import DEFAULT_DATABASE_PATH
from overlapscope.database.models import Base

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None
_init_lock = threading.Lock()


def init_database(database_path: str | None = None) -> None:
    """
    Initialize the database connection and create missing tables.

    Subsequent calls are no-ops until cleanup_database() is called.

    Args:
        database_path: Path to the SQLite database file.
                      Defaults to DEFAULT_DATABASE_PATH.

    Raises:
        PermissionError: If directory cannot be created
        ValueError: If database path is invalid
    """
    global _engine, _SessionFactory

    with _init_lock:
        if _engine is not None and _SessionFactory is not None:
            return

        if database_path is None:
            database_path = DEFAULT_DATABASE_PATH

        if not database_path or not isinstance(database_path, str):
            raise ValueError(f"Invalid database path: {database_path}")

        db_dir = os.path.dirname(database_path)
        if db_dir:
            try:
                os.makedirs(db_dir, exist_ok=True)
            except PermissionError as e:
                raise PermissionError(
                    f"Cannot create database directory {db_dir}: {e}"
                ) from e

        engine = create_engine(f"sqlite:///{database_path}", echo=False)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        Base.metadata.create_all(engine)

        _engine = engine
        _SessionFactory = sessionmaker(bind=engine)


def get_session() -> Session:
    """
    Get a new database session.

    Raises:
        RuntimeError: If database has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    return _SessionFactory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Provide a transactional scope for database operations.

    Usage:
        with session_scope() as session:
            ExecutionStore(session).write_overlap_records(records)
            # Commits on success, rolls back and re-raises on error

    Yields:
        A database session.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    """Get the database engine."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def cleanup_database() -> None:
    """
    Dispose of the engine and reset global state.

    Tests call this between databases.
    """
    global _engine, _SessionFactory

    with _init_lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None
        _SessionFactory = None
