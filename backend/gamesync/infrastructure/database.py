"""Database Session Manager — short-lived async sessions over one engine per process.

Invariants:
    - Every repository call opens and closes its own session
    - A failing session is rolled back before its error leaves this module
    - SQLAlchemy exceptions surface as DatabaseError (core/errors.py)

Design Decisions:
    - expire_on_commit=False: records returned by repositories stay readable after
      their session closes, which background enrichment relies on
    - Pool options only apply to server databases; SQLite URLs get a plain engine
    - from_engine() lets tests wrap an in-memory SQLite engine
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from gamesync.core.errors import DatabaseError
from gamesync.db.base import Base

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Unique or foreign key constraint violated", "commit"),
    (OperationalError, "Database unreachable or operation aborted", "execute"),
    (DBAPIError, "Database driver rejected the statement", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


class DatabaseSessionManager:
    """Owns the engine and hands out sessions to repositories."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 10, max_overflow: int = 5,
    ) -> "DatabaseSessionManager":
        if database_url.startswith("sqlite"):
            return cls(create_async_engine(database_url))
        return cls(create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        ))

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DatabaseSessionManager":
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            message, operation = _describe(e)
            logger.error(f"{message}: {e}", extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError(message, operation) from e
        finally:
            await session.close()

    async def create_schema(self) -> None:
        """Create every table. Local runs and tests only."""
        import gamesync.models  # noqa: F401  registers every table on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except (DatabaseError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def _describe(error: SQLAlchemyError) -> tuple[str, str]:
    for error_type, message, operation in _ERROR_MAP:
        if isinstance(error, error_type):
            return message, operation
    return "Database operation failed", "unknown"


def init_db(database_url: str, **pool_options) -> DatabaseSessionManager:
    manager = DatabaseSessionManager.from_url(database_url, **pool_options)
    logger.info(f"Database engine created for {manager.engine.url.render_as_string(hide_password=True)}")
    return manager
