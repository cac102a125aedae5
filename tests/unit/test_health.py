"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from intromatch.main import app

client = TestClient(app)


def _pool(health):
    pool = MagicMock()
    pool.health_check = AsyncMock(return_value=health)
    return pool


def test_healthz_endpoint():
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "intromatch"


def test_readyz_all_healthy():
    app.state.db_pool = _pool(
        {
            "healthy": True,
            "connection_time_ms": 1.2,
            "pool_stats": {"pool_size": 4, "pool_available": 3, "pool_utilization_percent": 25},
        }
    )
    try:
        with patch("intromatch.routes.health.settings.SUPABASE_DB_URL", "postgresql://db"):
            response = client.get("/readyz")
    finally:
        app.state.db_pool = None

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 4
    assert "latency_ms" in data["checks"]["database"]
    assert data["checks"]["configuration"]["ok"] is True


def test_readyz_database_unhealthy():
    app.state.db_pool = _pool({"healthy": False, "error": "Connection failed"})
    try:
        with patch("intromatch.routes.health.settings.SUPABASE_DB_URL", "postgresql://db"):
            response = client.get("/readyz")
    finally:
        app.state.db_pool = None

    data = response.json()
    assert response.status_code == 200
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_without_pool_or_database_url():
    app.state.db_pool = None
    with patch("intromatch.routes.health.settings.SUPABASE_DB_URL", None):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"] == {"ok": False, "error": "Pool not created"}
    assert "SUPABASE_DB_URL not set" in data["checks"]["configuration"]["issues"]


def test_readyz_reports_matching_setup(tmp_path):
    app.state.db_pool = _pool({"healthy": True})
    golden = tmp_path / "golden_set.json"
    golden.write_text('{"labels": []}')
    try:
        with (
            patch("intromatch.routes.health.settings.SUPABASE_DB_URL", "postgresql://db"),
            patch("intromatch.routes.health.settings.EVAL_GOLDEN_SET_PATH", golden),
            patch(
                "intromatch.routes.health.settings.EVAL_FEEDBACK_LABELS_PATH",
                tmp_path / "missing.json",
            ),
        ):
            response = client.get("/readyz")
    finally:
        app.state.db_pool = None

    data = response.json()
    assert data["overall_ok"] is True
    matching = data["checks"]["matching"]
    assert matching["golden_set_present"] is True
    assert matching["feedback_labels_present"] is False
    assert matching["match_version"]
