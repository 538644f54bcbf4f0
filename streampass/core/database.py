"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (StaticPool for SQLite)
- Table definitions for passes, subscribers and the tier schedule
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, BigInteger, String, DateTime, Boolean, Index
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator
import os

from streampass.core.config import settings


MAX_UINT256 = 2**256 - 1

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


class Uint256(TypeDecorator):
    """Unsigned 256-bit integer stored as decimal text.

    Streamed amounts routinely exceed 64 bits (18-decimal tokens times hours),
    so they cannot live in a native INTEGER column on every backend.
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0 or value > MAX_UINT256:
            raise ValueError(f"value out of uint256 range: {value}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return False
    database = parsed.database or ""
    return database in ("", ":memory:") or "mode=memory" in url


def build_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    An in-memory SQLite database only exists on its one connection, so every
    session shares it (StaticPool). File SQLite gets a connection per checkout.
    """
    if url.startswith("sqlite"):
        if is_memory_sqlite(url):
            return create_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session(session_factory=None):
    """
    Context manager for database sessions.

    Commits when the block exits cleanly and rolls back on any exception,
    so a block is all-or-nothing.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = session_factory or get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine=None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine or get_engine())


# Passes (one row per issued token; rows are never deleted)
passes = Table(
    'passes',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=False),
    Column('owner', String(100), nullable=False, index=True),
    Column('active', Boolean, nullable=False, default=False),
    Column('ttv', Uint256, nullable=False, default=0),
    Column('last_update', BigInteger, nullable=False, default=0),
    Column('last_flow_rate', Uint256, nullable=False, default=0),
    # Increases on every deactivation; NULL until the pass is first deactivated
    Column('deactivation_seq', Integer, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Composite index for token_of_owner_by_index: (owner, id)
    Index('idx_passes_owner_id', 'owner', 'id'),
)

# Subscribers and their single active pass (0 = none)
subscribers = Table(
    'subscribers',
    metadata,
    Column('address', String(100), primary_key=True),
    Column('active_pass_id', Integer, nullable=False, default=0),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)

# Tier schedule; replaced wholesale by the collection owner
pass_tiers = Table(
    'pass_tiers',
    metadata,
    Column('position', Integer, primary_key=True, autoincrement=False),
    Column('threshold', Uint256, nullable=False),
)
