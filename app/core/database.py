from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlalchemy.exc import OperationalError
from app.core.config import settings
import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


def normalize_database_url(db_url: str) -> str:
    """
    Rewrite plain PostgreSQL URLs so they use the asyncpg driver.
    """
    # If using postgresql://, convert to postgresql+asyncpg://
    if db_url.startswith('postgresql://'):
        return db_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    # If using postgres://, convert to postgresql+asyncpg://
    if db_url.startswith('postgres://'):
        return db_url.replace('postgres://', 'postgresql+asyncpg://', 1)
    return db_url


def engine_options(db_url: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for the given URL.

    Pool sizing and asyncpg connect args only apply to PostgreSQL; SQLite
    (used by the test suite) gets a NullPool so connections never outlive
    the event loop that opened them.
    """
    if db_url.startswith('sqlite'):
        return {"echo": settings.SQL_ECHO, "poolclass": NullPool}
    return {
        "echo": settings.SQL_ECHO,
        "pool_pre_ping": True,  # Verify connections before using them
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "connect_args": {
            "command_timeout": settings.DB_COMMAND_TIMEOUT,
        },
    }


try:
    db_url = normalize_database_url(settings.DATABASE_URL)
    engine = create_async_engine(db_url, **engine_options(db_url))

    AsyncSessionLocal = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autocommit=False,
        autoflush=False
    )
except OperationalError as e:
    logger.error(f"Failed to connect to database: {e}")
    raise

# Dependency to use in FastAPI endpoints
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

# Context manager for use in scripts
@asynccontextmanager
async def get_db_context():
    """
    Context manager for database sessions outside of request handlers.
    """
    session = AsyncSessionLocal()
    try:
        yield session
    finally:
        await session.close()

async def initialize_db():
    """
    Initialize database connection and verify it's working.
    """
    async with engine.begin():
        logger.info("Database connection initialized successfully")

    return True

async def close_db_connection():
    """
    Close database connection pool.
    """
    await engine.dispose()
    logger.info("Database connection pool closed")

async def create_tables():
    """
    Create any missing tables. Existing tables are left untouched.
    """
    from app.db.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
