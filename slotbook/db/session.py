"""
Async engine, session factory and transaction helpers.

PostgreSQL (asyncpg) is the production store. Reservations rely on
`SELECT ... FOR UPDATE` on the availability row under READ COMMITTED, so the
engine pins that isolation level explicitly: under REPEATABLE READ the
booked-unit count taken after acquiring the lock would come from a snapshot
older than the lock and could miss units committed by the previous holder.

SQLite (aiosqlite) is supported for local runs and tests. It has no row
locks, so every transaction is opened with BEGIN IMMEDIATE, which takes the
database write lock up front and serializes writers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from slotbook.core.config import get_settings
from slotbook.core.errors import InternalError
from slotbook.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine configured for the dialect in `url`."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args={"timeout": 30})
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        isolation_level="READ COMMITTED",
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        connect_args={"command_timeout": settings.DB_COMMAND_TIMEOUT},
    )


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable the driver's implicit BEGIN; we emit our own below.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping(db: AsyncSession) -> None:
    await db.execute(text("SELECT 1"))


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncGenerator[AsyncSession, None]:
    """
    Run the enclosed block as one unit of work.

    Commits on success. On any exception, including task cancellation, the
    transaction is rolled back before the exception propagates. A failed
    rollback leaves the connection in an unknown state and is escalated to
    InternalError.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        try:
            await db.rollback()
        except Exception as rollback_exc:
            logger.critical(
                "transaction_rollback_failed",
                operation=operation,
                error=str(rollback_exc),
                exc_info=True,
            )
            raise InternalError(operation, detail="rollback failed") from rollback_exc
        raise
