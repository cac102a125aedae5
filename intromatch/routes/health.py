"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter, Request

from intromatch.config import settings

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Liveness: 200 whenever the process serves requests."""
    return {"status": "ok", "service": "intromatch"}


async def _database_check(request: Request) -> dict:
    pool = getattr(request.app.state, "db_pool", None)
    if pool is None:
        return {"ok": False, "error": "Pool not created"}

    t0 = time.time()
    try:
        health = await pool.health_check()
    except Exception as e:
        return {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

    check = {"ok": bool(health.get("healthy")), "latency_ms": round((time.time() - t0) * 1000, 1)}
    stats = health.get("pool_stats")
    if stats:
        check.update(
            pool_size=stats.get("pool_size", 0),
            pool_available=stats.get("pool_available", 0),
            pool_utilization_percent=stats.get("pool_utilization_percent", 0),
            connection_time_ms=health.get("connection_time_ms", 0),
        )
    if not check["ok"]:
        check["error"] = health.get("error", "Database unhealthy")
        if "error_type" in health:
            check["error_type"] = health["error_type"]
    return check


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness: database pool, required configuration and the matching setup.

    Missing label files are reported but do not fail readiness; they only
    matter to the offline evaluation and tuning jobs.
    """
    checks = {"database": await _database_check(request)}

    config_issues = []
    if not settings.SUPABASE_DB_URL:
        config_issues.append("SUPABASE_DB_URL not set")
    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
        "explanations_enabled": settings.explanations_enabled(),
    }

    checks["matching"] = {
        "match_version": settings.MATCH_VERSION,
        "mrr_threshold": settings.EVAL_MRR_THRESHOLD,
        "golden_set_present": settings.EVAL_GOLDEN_SET_PATH.exists(),
        "feedback_labels_present": settings.EVAL_FEEDBACK_LABELS_PATH.exists(),
    }

    overall_ok = checks["database"]["ok"] and checks["configuration"]["ok"]
    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
