"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • db_session      — in-memory SQLite session with every table created
  • patched_db      — points ``backoffice.database.SessionLocal`` at that
                      same engine so routers see the test data
  • make_employee   — Employee factory with hourly defaults
  • utc             — build an aware UTC datetime in one call
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root is on the path so all backoffice imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from backoffice.domain.models import Employee  # noqa: E402


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def db_engine():
    from backoffice.database import Base

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Create an in-memory SQLite database for testing."""
    Session = sessionmaker(bind=db_engine, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def patched_db(db_engine, monkeypatch):
    """Route ``get_db()`` to the in-memory engine for router tests."""
    import backoffice.database as database

    Session = sessionmaker(bind=db_engine, autoflush=False)
    monkeypatch.setattr(database, "SessionLocal", Session)
    return Session


# ---------------------------------------------------------------------------
# Domain factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_employee():
    def _factory(**kwargs) -> Employee:
        kwargs.setdefault("id", "e1")
        kwargs.setdefault("name", "Test Employee")
        kwargs.setdefault("hourly_rate", 1500)
        return Employee(**kwargs)
    return _factory


@pytest.fixture
def utc():
    def _build(*args) -> datetime:
        return datetime(*args, tzinfo=timezone.utc)
    return _build
