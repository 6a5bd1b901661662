"""
Shipment Service Backend - Persistence Gateway
===============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   A `Database` object owns one async engine (and therefore one bounded
       connection pool). It is created at startup, stored on `app.state`,
       handed to whoever needs sessions, and disposed at shutdown.
Who:   Repositories receive sessions from it; the usage notifier opens its
       own short sessions for the request log; /api/health pings it.

Connection Pooling:
    pool_size + max_overflow is the fixed ceiling on simultaneous queries.
    A saturated pool makes callers queue for up to pool_timeout seconds,
    after which SQLAlchemy raises TimeoutError (a SQLAlchemyError), which the
    repository converts into DatabaseError like any other store failure.

    SQLite URLs (tests and local runs) use NullPool: every session opens
    its own connection and sizing arguments do not apply.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from starlette.requests import Request

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models share its metadata, which alembic and `Database.create_all()`
    read to build the schema.
    """
    pass


class Database:
    """
    Process-scoped handle on the relational store.

    Attributes:
        url:              Connection URL the engine was built from
        engine:           AsyncEngine owning the connection pool
        session_factory:  async_sessionmaker producing AsyncSession objects
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: float = 30.0,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = url
        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite"):
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=pool_pre_ping,
                pool_recycle=3600,
            )
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        # expire_on_commit=False: rows stay readable after the repository commits
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "Database":
        config = config or default_settings
        return cls(
            url=config.database_url,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_pre_ping=config.db_pool_pre_ping,
            echo=config.log_level == "DEBUG",
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yields a session that commits on success and rolls back on error.

        Example:
            async with database.session() as session:
                session.add(CommandLog(method="GET", endpoint="/api/shipments"))
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Runs SELECT 1; returns False instead of raising when the store is down."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def create_all(self) -> None:
        """Creates all tables registered on Base.metadata (dev and tests)."""
        # Imported for the side effect of registering the models
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Closes every pooled connection. Called at application shutdown."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the Database stored on app.state
        2. Yields it to the route handler
        3. On success: commits anything the handler left pending
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    Repositories commit their own writes, so the trailing commit is normally
    a no-op; it only guarantees nothing is left half-flushed.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
