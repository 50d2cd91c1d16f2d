"""
Database configuration with SQLAlchemy 2.0 async support.
"""

import asyncio
import logging
import ssl
from collections.abc import AsyncGenerator
from urllib.parse import urlparse

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _get_connect_args(database_url: str) -> dict:
    """Get connection arguments, including SSL for managed databases."""
    connect_args = {}

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        return connect_args

    # Skip SSL for local development (localhost, 127.0.0.1, or Docker service names)
    local_hosts = ["localhost", "127.0.0.1", "@db:", "@db/", "@postgres:", "@postgres/"]
    is_local = any(host in database_url for host in local_hosts)

    if not is_local:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE  # Managed DBs often use self-signed certs
        connect_args["ssl"] = ssl_context
        logger.info("SSL enabled for database connection")

    return connect_args


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on SQLite.

    The reaction store relies on nested transactions to recover from
    unique violations without discarding the surrounding unit of work.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for the configured database."""
    if database_url.startswith("sqlite"):
        kwargs = {}
        if database_url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
            # Single shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        sqlite_engine = create_async_engine(
            database_url,
            echo=settings.debug,
            connect_args=_get_connect_args(database_url),
            **kwargs,
        )
        _enable_sqlite_savepoints(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.debug,
        connect_args=_get_connect_args(database_url),
        pool_pre_ping=True,  # Verify connections before using
    )


# Create async engine
engine = build_engine(settings.database_url)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables registered on the metadata."""
    # Import all models to ensure they're registered
    from app.models import (  # noqa: F401
        category,
        membership,
        post,
        post_action,
        reaction,
        topic,
        user,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Initialize database (create tables if needed) with retry logic."""
    max_retries = 10
    retry_delay = 5  # seconds

    # Log which database we're connecting to (mask password)
    try:
        parsed = urlparse(settings.database_url)
        if parsed.password:
            masked_url = f"{parsed.scheme}://{parsed.username}:***@{parsed.hostname}:{parsed.port}{parsed.path}"
        else:
            masked_url = settings.database_url
        logger.info(f"Connecting to database: {masked_url}")
    except ValueError:
        logger.info("Connecting to database...")

    for attempt in range(max_retries):
        try:
            await create_tables()
            logger.info("Database initialized successfully")
            return
        except OSError as e:
            if attempt < max_retries - 1:
                logger.warning(f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}")
                logger.warning(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Database connection failed after {max_retries} attempts")
                raise


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
