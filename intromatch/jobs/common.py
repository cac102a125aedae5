"""
Shared plumbing for the batch tools: exit codes and the pool lifecycle.
"""

import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from intromatch.config import settings
from intromatch.db.pool import DatabasePoolManager
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_GATE_FAILED = 1
EXIT_ERROR = 2


class JobError(Exception):
    """Fatal batch-tool failure that maps to a non-zero exit code."""

    def __init__(self, message: str, operation: str | None = None, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.operation = operation
        self.exit_code = exit_code
        self.recoverable = False


def report_failure(job: str, error: Exception) -> None:
    """Log a fatal error and echo a short message to stderr for the operator."""
    logger.error(
        "Job failed",
        job=job,
        error=str(error),
        error_type=type(error).__name__,
        operation=getattr(error, "operation", None),
    )
    print(f"{job}: {error}", file=sys.stderr)


@asynccontextmanager
async def database_pool(
    application_name: str, read_only: bool = True
) -> AsyncGenerator[DatabasePoolManager, None]:
    """
    Open a pool for one batch run and always close it. Batch runs only
    read the match store, so the pool is read-only unless asked otherwise.

    Raises:
        ConfigurationError: If SUPABASE_DB_URL is not configured
        RuntimeError: If the pool cannot connect
    """
    pool = DatabasePoolManager(
        settings.require_database_url(), application_name=application_name, read_only=read_only
    )
    try:
        await pool.initialize()
        yield pool
    finally:
        await pool.close()
