"""
Async Postgres pool for the match store.

The API lifespan owns one pool for request handlers; each batch run opens
its own through `intromatch.jobs.common.database_pool`. Evaluation, tuning
and label export only read, so their sessions are opened read-only.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from intromatch.config import settings
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 30.0
BUSY_UTILIZATION_PERCENT = 90


class DatabasePoolManager:
    """
    Connection pool with an explicit open/close lifecycle.

    Usage:
        pool = DatabasePoolManager(settings.require_database_url(), read_only=True)
        await pool.initialize()
        try:
            rows = await fetch_all(pool, "SELECT ...")
        finally:
            await pool.close()
    """

    def __init__(
        self,
        conninfo: str,
        application_name: str = "intromatch",
        read_only: bool = False,
        statement_timeout: str | None = None,
    ):
        self.conninfo = conninfo
        self.application_name = application_name
        self.read_only = read_only
        # Offline runs scan every labeled conversation, so they get more room
        self.statement_timeout = statement_timeout or ("300s" if read_only else "60s")
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        """
        Open the pool and run a probe query.

        Raises:
            RuntimeError: If the pool was closed before or cannot connect
        """
        if self._initialized:
            logger.warning("Database pool already initialized", application=self.application_name)
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        config = settings.get_db_pool_config()
        logger.info(
            "Opening database pool",
            application=self.application_name,
            read_only=self.read_only,
            min_size=config["min_size"],
            max_size=config["max_size"],
        )
        self.pool = AsyncConnectionPool(
            conninfo=self.conninfo,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **config,
        )
        try:
            await self.pool.open()
            await self.pool.wait()
            self._initialized = True
            await self._probe()
        except Exception as e:
            logger.error(
                "Database pool failed to open", application=self.application_name, error=str(e)
            )
            self._initialized = False
            await self.pool.close()
            self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready", application=self.application_name)

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        app_name = f"{self.application_name}-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(self.statement_timeout))
        )
        if self.read_only:
            await conn.execute("SET default_transaction_read_only = on")

    async def _probe(self) -> None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database probe returned an unexpected result")

    async def close(self) -> None:
        if not self._initialized or self._closed:
            return

        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
            logger.info("Database pool closed", application=self.application_name)
        except TimeoutError:
            logger.warning("Database pool close timed out", application=self.application_name)
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        if not self.initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Connection inside a transaction: commit on success, rollback on exception."""
        if self.read_only:
            raise RuntimeError("Write transaction requested on a read-only pool")

        async with self.connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> dict[str, Any]:
        """Probe latency and pool utilization for the readiness endpoint."""
        if not self.initialized:
            return {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}

        start_time = time.time()
        try:
            await self._probe()
        except (psycopg.Error, RuntimeError) as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        pool_size = stats.get("pool_size", 0)
        pool_available = stats.get("pool_available", 0)
        utilization = (pool_size - pool_available) / pool_size * 100 if pool_size else 0

        return {
            "healthy": utilization < BUSY_UTILIZATION_PERCENT,
            "service": "database_pool",
            "connection_time_ms": round((time.time() - start_time) * 1000, 2),
            "pool_stats": {
                "pool_size": pool_size,
                "pool_available": pool_available,
                "pool_utilization_percent": round(utilization, 2),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }
