"""Pytest configuration and fixtures for overlapscope tests."""

import tempfile
import uuid

from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that do not require external dependencies"
    )
    config.addinivalue_line(
        "markers", "business_logic: Tests for core business logic and algorithms"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests combining multiple components"
    )


# =============================================================================
# Database Test Fixtures
# =============================================================================


@pytest.fixture
def temp_db():
    """Create a temporary database path for testing."""
    temp_dir = Path(tempfile.gettempdir())
    db_path = temp_dir / f"test_overlapscope_{uuid.uuid4().hex}.sqlite"

    yield db_path

    # Also clean up WAL files if they exist
    for ext in ["", "-wal", "-shm"]:
        path = Path(str(db_path) + ext)
        if path.exists():
            path.unlink()


@pytest.fixture
def db_session(temp_db):
    """Create fresh database session for each test with proper isolation."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    from overlapscope.database.models import Base

    engine = create_engine(f"sqlite:///{temp_db}")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def initialized_db(temp_db):
    """Initialize the global session factory on a temporary database."""
    from overlapscope.database.session import cleanup_database, init_database

    cleanup_database()
    init_database(str(temp_db))

    yield temp_db

    cleanup_database()


@pytest.fixture
def execution_factory(db_session):
    """
    Factory for inserting executions.

    Usage:
        execution_factory(timestamp=0, duration=10, view_id=1)
    """
    from overlapscope.database.models import Execution

    def _create(timestamp, duration, view_id=None, form_id=None, ordinal=0):
        execution = Execution(
            timestamp=timestamp,
            ordinal=ordinal,
            wallclock_time_ns=duration,
            view_id=view_id,
            form_id=form_id,
        )
        db_session.add(execution)
        db_session.flush()
        return execution

    return _create


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temporary directory."""
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("overlapscope.config.get_config_path", lambda: config_path)
    monkeypatch.setattr("overlapscope.cli.get_config_path", lambda: config_path)
    return config_path
