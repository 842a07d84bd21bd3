"""
Token Claim Service - Database Session

Async database session management and schema bootstrap.

Deployments run on PostgreSQL through asyncpg; local runs and tests use
SQLite through aiosqlite. Schema statements stay within the SQL both
dialects accept.
"""

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from token_claim.core.config import settings

logger = structlog.get_logger(__name__)

# uint256 values do not fit BIGINT, so they are stored as decimal strings
SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS claim_events (
        event_index BIGINT PRIMARY KEY,
        token VARCHAR(42) NOT NULL,
        start_time VARCHAR(78) NOT NULL,
        end_time VARCHAR(78) NOT NULL,
        merkle_root VARCHAR(66) NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS claims (
        event_index BIGINT NOT NULL REFERENCES claim_events(event_index),
        recipient VARCHAR(42) NOT NULL,
        amount VARCHAR(78) NOT NULL,
        claimed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (event_index, recipient)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS token_balances (
        token VARCHAR(42) NOT NULL,
        holder VARCHAR(42) NOT NULL,
        balance VARCHAR(78) NOT NULL,
        PRIMARY KEY (token, holder)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_claims_recipient
    ON claims(recipient)
    """,
)


def build_engine(url: str | None = None) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite engines share a single connection so in-memory databases
    survive across sessions.
    """
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.DEBUG,
        )

    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.DEBUG,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Advisory lock key shared by every claim service process ("claimsvc")
SERIALIZATION_LOCK_KEY = 0x636C61696D737663


async def acquire_serialization_lock(session: AsyncSession) -> None:
    """
    Serialize this transaction against every other service process.

    On PostgreSQL this takes a transaction-scoped advisory lock, released
    at commit or rollback. SQLite allows a single writer per database, so
    there it is a no-op.
    """
    if session.get_bind().dialect.name != "postgresql":
        return

    await session.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": SERIALIZATION_LOCK_KEY},
    )


engine = build_engine()
async_session_factory = build_session_factory(engine)


async def ensure_schema(bind: AsyncEngine) -> None:
    """Create claim tables if they do not exist."""
    async with bind.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(text(statement))

    logger.info("Claim tables verified")


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Verify database connectivity and bootstrap the schema."""
    bind = bind or engine

    logger.info(
        "Initializing database connection",
        dialect=bind.dialect.name,
        database=bind.url.database,
    )
    async with bind.begin() as conn:
        await conn.execute(text("SELECT 1"))

    await ensure_schema(bind)

    logger.info("Database connection verified")


async def close_db(bind: AsyncEngine | None = None) -> None:
    """Close database connections gracefully."""
    await (bind or engine).dispose()
    logger.info("Database connections closed")

