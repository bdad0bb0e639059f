"""
PostgreSQL access for the shared task database.

The embedding table lives next to the task table it references, so both
are reached through one asyncpg pool. Every call accepts a timeout that
bounds both the wait for a pooled connection and the statement itself; the
vector store passes its own so a slow or saturated database degrades search
instead of hanging it. Schema setup belongs to the vector store.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import asyncpg

from tasksearch.config.settings import get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    asyncpg pool wrapper.

    Usage:
        async with Database() as db:
            count = await db.fetchval("SELECT COUNT(*) FROM task", timeout=5)
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float | None = None,
    ):
        """
        Args:
            database_url: PostgreSQL connection URL (DATABASE_URL by default)
            min_size: Minimum pool size
            max_size: Maximum pool size
            command_timeout: Fallback timeout for statements that pass none
        """
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = command_timeout or settings.db_command_timeout
        self._application_name = settings.db_application_name

        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create the pool. Calling it again is a no-op."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                server_settings={"application_name": self._application_name},
            )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

        logger.info(f"Database connected (pool: {self._min_size}-{self._max_size})")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        """Get connection pool, raising if not connected."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(
        self, timeout: float | None = None
    ) -> AsyncIterator[asyncpg.Connection]:
        """
        Borrow a pooled connection.

        Args:
            timeout: Seconds to wait for a free connection; raises
                asyncio.TimeoutError when the pool stays exhausted
        """
        async with self.pool.acquire(timeout=timeout) as conn:
            yield conn

    async def execute(self, query: str, *args: Any, timeout: float | None = None) -> str:
        """Run a statement and return its status string."""
        async with self.acquire(timeout) as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def fetch(
        self, query: str, *args: Any, timeout: float | None = None
    ) -> list[asyncpg.Record]:
        async with self.acquire(timeout) as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetchrow(
        self, query: str, *args: Any, timeout: float | None = None
    ) -> asyncpg.Record | None:
        async with self.acquire(timeout) as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args: Any, timeout: float | None = None) -> Any:
        async with self.acquire(timeout) as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    async def health_check(self, timeout: float = 2.0) -> bool:
        """
        Check that the database answers a trivial query in time.

        Returns:
            True if `SELECT 1` succeeded within the timeout
        """
        try:
            return await self.fetchval("SELECT 1", timeout=timeout) == 1
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            OSError,
            RuntimeError,
            asyncio.TimeoutError,
        ) as e:
            logger.warning(f"Database health check failed: {e}")
            return False
