"""
Batch tool runner.

Reads the job name from the first CLI argument or the WORKER_JOB
environment variable and passes the remaining arguments to the job.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable, Sequence

from intromatch.config import settings
from intromatch.infrastructure.observability.logging import (
    bind_job_context,
    get_logger,
    setup_logging,
)
from intromatch.jobs.common import EXIT_ERROR
from intromatch.jobs.evaluate_job import run_evaluation
from intromatch.jobs.export_labels_job import run_export
from intromatch.jobs.tune_job import run_tuning

logger = get_logger(__name__)

JobCoroutine = Callable[[Sequence[str]], Awaitable[int]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "evaluate_matching": run_evaluation,
    "tune_weights": run_tuning,
    "export_feedback_labels": run_export,
}

DEFAULT_JOB = "evaluate_matching"


def _resolve_job(argv: Sequence[str]) -> tuple[str, list[str]]:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if argv and not argv[0].startswith("-"):
        return argv[0].strip().lower(), list(argv[1:])
    return os.getenv("WORKER_JOB", DEFAULT_JOB).strip().lower(), list(argv)


async def run_worker(job_name: str, job_args: Sequence[str] = ()) -> int:
    """Run the requested batch job and return its exit code."""
    name = job_name.strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    run_id = bind_job_context(name)
    logger.info("Starting batch job", run_id=run_id, args=list(job_args))
    return await JOB_REGISTRY[name](list(job_args))


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL)
    job_name, job_args = _resolve_job(sys.argv[1:] if argv is None else argv)
    try:
        return asyncio.run(run_worker(job_name, job_args))
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
