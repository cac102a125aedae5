"""
Shared FastAPI dependencies.
"""

from fastapi import HTTPException, Request, status

from intromatch.db.pool import DatabasePoolManager


def get_db_pool(request: Request) -> DatabasePoolManager:
    """Pool owned by the application lifespan."""
    pool = getattr(request.app.state, "db_pool", None)
    if pool is None or not pool.initialized:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database pool not available",
        )
    return pool
