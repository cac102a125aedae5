import pytest
import structlog

from intromatch.jobs import evaluate_job, worker


@pytest.mark.asyncio
async def test_run_worker_runs_job_with_args(monkeypatch):
    called = {}

    async def dummy_job(args):
        called["args"] = list(args)
        called["context"] = structlog.contextvars.get_contextvars()
        return 0

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    exit_code = await worker.run_worker("dummy", ["--threshold", "0.5"])

    assert exit_code == 0
    assert called["args"] == ["--threshold", "0.5"]
    assert called["context"]["job"] == "dummy"
    assert called["context"]["run_id"]


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_job_resolved_from_argv_or_environment(monkeypatch):
    monkeypatch.setenv("WORKER_JOB", "tune_weights")

    assert worker._resolve_job(["export_feedback_labels", "--out", "x.json"]) == (
        "export_feedback_labels",
        ["--out", "x.json"],
    )
    assert worker._resolve_job(["--golden", "g.json"]) == ("tune_weights", ["--golden", "g.json"])


def test_main_returns_job_exit_code(monkeypatch):
    async def failing_gate(args):
        return 1

    monkeypatch.setitem(worker.JOB_REGISTRY, "gate", failing_gate)

    assert worker.main(["gate"]) == 1
    assert worker.main(["nope"]) == 2


@pytest.mark.asyncio
async def test_jobs_fail_fast_without_database_url(monkeypatch, capsys):
    monkeypatch.setattr(evaluate_job.settings, "SUPABASE_DB_URL", None)

    exit_code = await evaluate_job.run_evaluation([])

    assert exit_code == 2
    assert "SUPABASE_DB_URL is not set" in capsys.readouterr().err
