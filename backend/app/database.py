"""
QPaperHub Backend — Database Client and Session Management
============================================================

What:  The `Database` client (engine + session factory), the declarative Base,
       the per-request session dependency, and the persistence-call guard.
How:   `Database` is constructed explicitly in the application lifespan,
       connected at startup, stored on `app.state.database`, and disposed at
       shutdown. Routes obtain a session through `get_db_session`, which pulls
       the client off the running application rather than a module global.
Who:   main.py (lifecycle), routes (sessions), services (`guarded`).

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600.
    SQLite URLs (tests, local development) use the driver's default pool.
"""

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Optional, TypeVar

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic and `Database.create_all` read.
    """
    pass


class Database:
    """
    Explicitly constructed persistence client.

    Lifecycle:
        db = Database(url)
        await db.connect()        # build engine + session factory
        async with db.session() as s: ...
        await db.dispose()        # close pooled connections

    One instance per process; every request borrows a session from it.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        echo: Optional[bool] = None,
    ):
        self.url = url or settings.database_url
        self.echo = settings.log_level == "DEBUG" if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Create the async engine and session factory (idempotent)."""
        if self._engine is not None:
            return

        engine_kwargs = {"echo": self.echo}
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )

        self._engine = create_async_engine(self.url, **engine_kwargs)
        # expire_on_commit=False: ORM objects stay readable after commit
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine created (dialect=%s)", self._engine.dialect.name)

    def session(self) -> AsyncSession:
        """Return a new AsyncSession; use as `async with db.session() as s`."""
        if self._session_factory is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._session_factory()

    async def create_all(self) -> None:
        """Create every table registered on Base.metadata that does not exist yet."""
        # Models must be imported so their tables are registered
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def ping(self) -> bool:
        """Run SELECT 1; False on any failure."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Borrows the Database client from `request.app.state.database`
        2. Yields a fresh session to the route handler
        3. On success: commits anything the service left pending
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/saved-papers/{user_id}")
        async def list_saved(user_id: str, db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Persistence Guard ─────────────────────────────────────────────────────
async def guarded(
    operation: Awaitable[T],
    description: str,
    timeout: Optional[float] = None,
) -> T:
    """
    Await a persistence coroutine under an explicit timeout.

    Translation:
        asyncio timeout      → PersistenceError(retryable=True)
        SQLAlchemyError      → PersistenceError(retryable=False)
        anything else        → propagates unchanged

    Args:
        operation:   Coroutine performing one or more statements
        description: Short label used in logs and error context ("save paper")
        timeout:     Seconds; defaults to settings.db_operation_timeout
    """
    limit = settings.db_operation_timeout if timeout is None else timeout
    try:
        return await asyncio.wait_for(operation, timeout=limit)
    except asyncio.TimeoutError:
        logger.error("Database operation '%s' timed out after %.1fs", description, limit)
        raise PersistenceError(
            message="The database did not respond in time. Please try again.",
            retryable=True,
            context={"operation": description, "timeout": limit},
        )
    except SQLAlchemyError as e:
        logger.error("Database operation '%s' failed: %s", description, str(e))
        raise PersistenceError(
            context={"operation": description, "error_type": type(e).__name__},
        )
