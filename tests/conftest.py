"""Root conftest for all tests.

Environment is set before any ride_planner import so Settings and the token
cipher pick up test values.
"""

import os
from contextlib import contextmanager

from cryptography.fernet import Fernet

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ride_planner.db.models import Base


@pytest.fixture
def test_user_id() -> str:
    return "user-123"


@pytest.fixture
def test_peloton_user_id() -> str:
    return "peloton-user-123"


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """In-memory SQLite session shared by the test and the API routes.

    StaticPool keeps a single connection so every session sees the same
    in-memory database. get_session() is patched where the routes import it.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()

    @contextmanager
    def mock_get_session():
        yield session

    import ride_planner.api.planner.reorder as reorder_module
    import ride_planner.api.planner.sync_completions as sync_module
    import ride_planner.db.session as session_module

    monkeypatch.setattr(session_module, "get_session", mock_get_session)
    monkeypatch.setattr(sync_module, "get_session", mock_get_session)
    monkeypatch.setattr(reorder_module, "get_session", mock_get_session)

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
