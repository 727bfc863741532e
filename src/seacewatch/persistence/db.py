"""
Database connection and session management.

Provides sync database access with connection pooling and session
lifecycle management. Every component that writes takes a session
factory, so tests can hand in their own in-memory engine.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///data/seacewatch.db"

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


# =============================================================================
# Global Engine References
# =============================================================================

_sync_engine: Engine | None = None
_sync_session_factory: sessionmaker[Session] | None = None


# =============================================================================
# SQLite Configuration
# =============================================================================


def _configure_sqlite(engine: Engine) -> None:
    """Configure SQLite for better performance and reliability.

    Enables:
    - Foreign key enforcement
    - WAL mode for better concurrency
    - Synchronous mode for durability
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA cache_size=-64000")  # 64MB cache
        cursor.close()


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Create a new engine without touching the global one.

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    if url.startswith("sqlite"):
        if url in _MEMORY_URLS:
            engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            db_path = url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Get or create the global database engine.

    Args:
        url: SQLAlchemy database URL
        echo: Whether to log SQL statements
        pool_size: Connection pool size (ignored for SQLite)

    Returns:
        SQLAlchemy Engine instance
    """
    global _sync_engine, _sync_session_factory

    if _sync_engine is not None:
        return _sync_engine

    _sync_engine = create_db_engine(url, echo=echo, pool_size=pool_size)
    _sync_session_factory = make_session_factory(_sync_engine)
    return _sync_engine


def get_session_factory() -> sessionmaker[Session]:
    """The global session factory, initializing the default engine if needed."""
    if _sync_session_factory is None:
        get_engine()

    assert _sync_session_factory is not None
    return _sync_session_factory


# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Transactional scope: commit on success, roll back on error.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = (factory or get_session_factory())()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a synchronous session on the global engine."""
    with session_scope() as session:
        yield session


# =============================================================================
# Database Initialization
# =============================================================================


def create_schema(engine: Engine) -> None:
    """Create all tables on `engine` if they don't exist."""
    Base.metadata.create_all(bind=engine)


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False, pool_size: int = 5) -> None:
    """Initialize the database schema.

    Creates all tables if they don't exist. For production use,
    prefer Alembic migrations.

    Args:
        url: Database URL
        echo: Whether to log SQL
        pool_size: Connection pool size (ignored for SQLite)
    """
    create_schema(get_engine(url, echo=echo, pool_size=pool_size))


def drop_db(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop all database tables.

    WARNING: This will delete all data!
    """
    engine = get_engine(url)
    Base.metadata.drop_all(bind=engine)


# =============================================================================
# Cleanup
# =============================================================================


def dispose_engines() -> None:
    """Dispose of the global engine.

    Should be called on application shutdown.
    """
    global _sync_engine, _sync_session_factory

    if _sync_engine is not None:
        _sync_engine.dispose()
        _sync_engine = None
        _sync_session_factory = None
