"""
Query helpers shared by the matching and evaluation repositories.

Every psycopg failure surfaces as DatabaseError so callers handle a single
exception type; connection-level failures can be retried with `with_db_retry`.
"""

import asyncio
import functools
from typing import Any

import psycopg

from intromatch.db.pool import DatabasePoolManager
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Raised when a query against the match store fails."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def _run(
    pool: DatabasePoolManager, query: str, params: tuple, operation: str, many: bool
) -> Any:
    try:
        async with pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return await (cursor.fetchall() if many else cursor.fetchone())
    except psycopg.Error as e:
        logger.error("Query failed", operation=operation, query=query.strip()[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation=operation) from e


async def fetch_one(
    pool: DatabasePoolManager, query: str, params: tuple = ()
) -> dict[str, Any] | None:
    """First row as a dict, or None when the query matched nothing."""
    return await _run(pool, query, params, "fetch_one", many=False)


async def fetch_all(
    pool: DatabasePoolManager, query: str, params: tuple = ()
) -> list[dict[str, Any]]:
    return await _run(pool, query, params, "fetch_all", many=True)


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a repository coroutine when the underlying failure is an
    OperationalError (dropped connection, server restart, timeout).

    Args:
        max_retries: Attempts after the first one
        base_delay: First backoff in seconds, doubled on every attempt
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    if not isinstance(e.__cause__, psycopg.OperationalError):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"{func.__name__} failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
