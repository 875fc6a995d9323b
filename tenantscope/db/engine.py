"""Database engine and session factory."""

from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tenantscope.config import Settings
from tenantscope.db.inmemory import InMemoryStorage
from tenantscope.db.models import Base
from tenantscope.db.sql_storage import SqlStorage
from tenantscope.db.storage import Storage


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create SQLAlchemy engine from settings.

    In-memory SQLite URLs share one connection across threads so every
    session sees the same database.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    database_url = settings.database_url

    if not database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string when "
            "storage_backend is 'sql'."
        )

    if database_url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True, echo=False)

    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return engine


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on foreign key enforcement for every new SQLite connection.

    SQLite ignores ``ondelete="CASCADE"`` unless the pragma is set per
    connection.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_storage_from_settings(settings: Settings) -> Storage:
    """Create the storage collaborator selected by ``storage_backend``.

    The SQL backend creates any missing tables on startup.
    """
    if settings.storage_backend == "memory":
        return InMemoryStorage()

    engine = create_engine_from_settings(settings)
    Base.metadata.create_all(engine)
    return SqlStorage(create_session_factory(engine))
