"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (production) and
SQLite (local development and tests).

SQLite ignores SELECT ... FOR UPDATE, so SQLite engines open every
transaction with BEGIN IMMEDIATE. That takes the database write lock up
front and gives the session lock the same serialization PostgreSQL row
locks provide.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from gateprep.config import DATABASE_URL, SQLITE_BUSY_TIMEOUT_SEC
from gateprep.logging_config import get_logger, log_with_context

logger = get_logger("db")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def build_engine(url: str = DATABASE_URL) -> Engine:
    """
    Create an engine configured for the target database.

    PostgreSQL gets a sized connection pool with pre-ping. SQLite gets
    cross-thread connections, a busy timeout, WAL, foreign keys and
    BEGIN IMMEDIATE transactions.
    """
    engine_kwargs = {"echo": False}

    if url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SEC,
        }

    engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # Let SQLAlchemy's "begin" hook own transaction start.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    log_with_context(logger, "DEBUG", "Engine created",
                     extra_data={"dialect": engine.dialect.name})
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = build_engine(DATABASE_URL)

# Session factory - creates new database sessions
SessionLocal = build_session_factory(engine)


def get_db():
    """
    FastAPI dependency that provides a database session.

    The session is closed after the request even if the handler raised.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """FastAPI dependency for code that manages its own transactions (session lock)."""
    return SessionLocal


def create_tables(bind: Engine = None):
    """
    Create all tables directly (SQLite dev and tests).
    For PostgreSQL, use the Alembic migrations instead.
    """
    import gateprep.models  # noqa: F401  registers models on Base.metadata
    Base.metadata.create_all(bind=bind or engine)
