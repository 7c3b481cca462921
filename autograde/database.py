"""Database engine and session management."""

import logging

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def create_engine_from_url(
    database_url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 20,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async engine with connection pooling and SQLite support."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "echo": echo}
        if ":memory:" in database_url:
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(database_url, **kwargs)
        event.listen(engine.sync_engine, "connect", set_sqlite_pragma)
    else:
        engine = create_async_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_size=pool_size,
            max_overflow=max_overflow,
            echo=echo,
        )

    event.listen(engine.sync_engine, "checkout", receive_checkout)
    event.listen(engine.sync_engine, "checkin", receive_checkin)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables in the database."""
    # Register every model on Base.metadata
    from . import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error creating tables: {e}")
        raise


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop all tables in the database."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error dropping tables: {e}")
        raise


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if database connection is working."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce foreign keys on SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def receive_checkout(dbapi_connection, connection_record, connection_proxy):
    """Log connection checkout."""
    logger.debug("Connection checked out from pool")


def receive_checkin(dbapi_connection, connection_record):
    """Log connection checkin."""
    logger.debug("Connection checked in to pool")
