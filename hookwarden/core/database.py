"""
Database configuration and session management.
Supports SQLite (default) and PostgreSQL (optional override).
"""
import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from hookwarden.core.config import settings
from hookwarden.core.logging_config import _sanitize_data
from hookwarden.middleware.request_logging import request_id_ctx, request_path_ctx

logger = logging.getLogger(__name__)

database_url = settings.effective_database_url
database_type = settings.database_type

logger.info(f"Using {database_type} database: {_sanitize_data(database_url)}")


def build_engine(url: str) -> Engine:
    """Create an engine with dialect-specific tuning."""
    if url.startswith("sqlite"):
        parsed = make_url(url)
        is_memory = parsed.database in (None, "", ":memory:")
        engine_kwargs = {
            "echo": False,
            "connect_args": {"check_same_thread": False},
        }
        if is_memory:
            engine_kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, **engine_kwargs)

        @event.listens_for(sqlite_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Enable FK enforcement so integration deletes cascade."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not is_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        logger.info(f"Configured SQLite engine ({'in-memory' if is_memory else 'file-based'})")
        return sqlite_engine

    if url.startswith(("postgresql", "postgres")):
        logger.info("Configured PostgreSQL engine with connection pooling")
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=10,
            pool_recycle=3600,  # Recycle connections every hour
        )

    logger.warning(
        f"Using unsupported database URL scheme '{url.split('://', 1)[0]}'. "
        "Install the appropriate DB driver for production use."
    )
    return create_engine(url, echo=False, pool_pre_ping=True)


engine = build_engine(database_url)


@event.listens_for(engine, "before_cursor_execute")
def _log_sql_statement(conn, cursor, statement, parameters, context, executemany):
    if not settings.log_sql_requests:
        return
    compact = " ".join(statement.split())
    if len(compact) > 800:
        compact = f"{compact[:800]}..."
    logger.info(
        "SQL statement path=%s request_id=%s: %s",
        request_path_ctx.get(),
        request_id_ctx.get(),
        compact,
    )


def create_db_and_tables():
    """Create all tables known to the model registry."""
    # Import models so every table is registered on the metadata
    from hookwarden import models  # noqa: F401
    from hookwarden.models.base import BaseModel

    BaseModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_session():
    """Get database session."""
    with Session(engine) as session:
        yield session


def get_session_context():
    """
    Get database session as context manager.

    Use this for background tasks and non-request contexts.

    Example:
        with get_session_context() as session:
            # use session
            pass
    """
    return Session(engine)


def init_db():
    """Initialize database tables."""
    logger.info("Initializing database...")
    create_db_and_tables()
    logger.info("Database initialization completed")
