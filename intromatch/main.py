"""
FastAPI application: match generation and suggestion reads.

The lifespan owns the database pool and the explanation client; handlers
reach them through app.state.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from intromatch.config import settings
from intromatch.db.pool import DatabasePoolManager
from intromatch.features.matching.api.router import router as matching_router
from intromatch.features.matching.services.explanation_service import ExplanationService
from intromatch.infrastructure.observability.logging import get_logger, log_request, setup_logging
from intromatch.routes import health

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Application starting",
        environment=settings.environment,
        match_version=settings.MATCH_VERSION,
    )

    pool = DatabasePoolManager(settings.require_database_url(), application_name="intromatch-api")
    await pool.initialize()
    explanations: ExplanationService | None = None
    try:
        explanations = ExplanationService()
        app.state.db_pool = pool
        app.state.explanation_service = explanations
        logger.info("Application ready", explanations_enabled=explanations.enabled)
        yield
    finally:
        logger.info("Application shutting down")
        if explanations is not None:
            await explanations.close()
        await pool.close()
        app.state.db_pool = None
        app.state.explanation_service = None


app = FastAPI(
    title="Intromatch",
    description="Introduction matching: scoring, evaluation and weight tuning",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(matching_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)
    log_request(request.method, request.url.path, response.status_code, duration_ms)
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
