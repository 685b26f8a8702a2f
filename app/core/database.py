"""Database configuration and session management.

SQLite is the default backend and PostgreSQL is supported. Both provide a
native ``INSERT ... ON CONFLICT DO UPDATE``, which the webhook ingestion
relies on for idempotent meeting upserts.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while a
      webhook delivery writes.

    - **Foreign Keys**: Disabled by default in SQLite. Enabled so that
      meetings and integrations must reference an existing account.

    - **check_same_thread=False**: Required for FastAPI, which may hand a
      session to a different worker thread than the one that opened it.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings

is_sqlite = settings.database_url.startswith("sqlite")
connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


if is_sqlite:

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Configure SQLite pragmas on each new connection.

        These settings are connection-level, not database-level, so they must
        be set each time a new connection is established from the pool.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session


def dialect_insert(session: Session):
    """Return the dialect-specific ``insert`` that supports ``on_conflict_do_update``."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Upsert not supported for database dialect {name!r}")
