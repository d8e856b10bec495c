"""
tests/conftest.py – shared fixtures for the matching test suite.

Service tests run against ``InMemoryStorage`` (tests/fakes.py).  Storage and
router tests use a throwaway in-memory SQLite database created from the
model metadata, so no Postgres is needed.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings


# ---------------------------------------------------------------------------
# Settings / storage
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    """Default settings, independent of any .env file on the machine."""
    return Settings(_env_file=None)


@pytest.fixture
def storage():
    from tests.fakes import InMemoryStorage

    return InMemoryStorage()


# ---------------------------------------------------------------------------
# SQLite session for SqlMatchStorage and router tests
# ---------------------------------------------------------------------------

@pytest.fixture
def db_session():
    from app.database import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
