"""
Database connection management with connection pooling.

All data-store access in the engine is asynchronous (SQLAlchemy asyncio).
Each port call opens its own short-lived session from the session factory,
so independent reads can be awaited concurrently.
"""
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_database_url() -> str:
    """Resolve the async database URL from settings."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    return (
        f"postgresql+asyncpg://{settings.POSTGRES_USER}:"
        f"{settings.POSTGRES_PASSWORD}@"
        f"{settings.POSTGRES_HOST}:"
        f"{settings.POSTGRES_PORT}/"
        f"{settings.POSTGRES_DB}"
    )


DATABASE_URL = build_database_url()


def create_engine_for(url: str, *, pooled: bool = True) -> AsyncEngine:
    """
    Create an async engine.

    Pool sizing only applies to server databases; SQLite and one-shot worker
    runs (a new event loop per task) use NullPool so no connection outlives
    the loop it was opened on.
    """
    if url.startswith("sqlite") or not pooled:
        return create_async_engine(url, poolclass=NullPool, echo=settings.DEBUG)
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,  # Number of connections to maintain
        max_overflow=settings.DB_MAX_OVERFLOW,  # Additional connections beyond pool_size
        pool_timeout=settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection
        pool_recycle=settings.DB_POOL_RECYCLE,  # Recycle connections after this many seconds
        pool_pre_ping=True,  # Verify connections before using
        echo=settings.DEBUG,  # Log SQL queries in debug mode
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,  # Prevent lazy loading issues
    )


engine = create_engine_for(DATABASE_URL)

# Session factory
SessionLocal = create_session_factory(engine)

Base = declarative_base()


def get_session_factory() -> async_sessionmaker:
    """
    Dependency for FastAPI routes that need the session factory.

    Ports take the factory rather than a session: one session per port call.
    Tests override this dependency with a factory bound to a scratch database.
    """
    return SessionLocal


def create_worker_session_factory(url: Optional[str] = None) -> async_sessionmaker:
    """
    Session factory for Celery tasks.

    Each task drives its own event loop via asyncio.run, so pooled
    connections must not be shared across runs.
    """
    return create_session_factory(create_engine_for(url or DATABASE_URL, pooled=False))


async def check_db_connection(session_factory: Optional[async_sessionmaker] = None) -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    factory = session_factory or SessionLocal
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
