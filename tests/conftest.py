"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from tenantscope.config import Settings
from tenantscope.db.builder import ContextBuilder
from tenantscope.db.engine import create_session_factory, enable_sqlite_foreign_keys
from tenantscope.db.inmemory import InMemoryStorage
from tenantscope.db.models import Base
from tenantscope.db.sql_storage import SqlStorage
from tenantscope.main import create_app


@pytest.fixture
def storage() -> InMemoryStorage:
    """Empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def builder(storage: InMemoryStorage) -> ContextBuilder:
    """Context builder over the in-memory storage with default handles."""
    return ContextBuilder(storage)


@pytest.fixture
def sql_storage() -> Generator[SqlStorage, None, None]:
    """SQL storage backed by an in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)

    yield SqlStorage(create_session_factory(engine))

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def postgres_storage() -> Generator[SqlStorage, None, None]:
    """SQL storage against a real PostgreSQL database.

    Requires DATABASE_URL to be set to a PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+psycopg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    engine = create_engine(database_url)
    Base.metadata.create_all(engine)

    yield SqlStorage(create_session_factory(engine))

    # Cleanup: drop all tables
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def client(storage: InMemoryStorage) -> TestClient:
    """Test client for an app over the shared in-memory storage fixture."""
    settings = Settings(storage_backend="memory", allow_dev_tokens=True, seed_dev_data=False)
    return TestClient(create_app(settings, storage=storage))
