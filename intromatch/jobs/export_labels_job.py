"""
Export labels derived from user feedback and suggestion status to JSON.

The exported file is read back by the evaluator and the tuner as the
feedback label source.
"""

import argparse
import json
from collections.abc import Sequence
from pathlib import Path

from intromatch.config import ConfigurationError, settings
from intromatch.db.helpers import DatabaseError
from intromatch.features.evaluation.labels import build_export, derive_feedback_labels
from intromatch.features.evaluation.repository import EvaluationRepository
from intromatch.infrastructure.observability.logging import get_logger

from .common import EXIT_ERROR, EXIT_OK, database_pool, report_failure

logger = get_logger(__name__)

JOB_NAME = "export_feedback_labels"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=JOB_NAME, description="Export feedback-derived relevance labels."
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=settings.EVAL_FEEDBACK_LABELS_PATH,
        help="Output file (default: %(default)s)",
    )
    return parser


def write_export(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


async def run_export(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        async with database_pool("intromatch-export-labels") as pool:
            repository = EvaluationRepository(pool)
            feedback_rows = await repository.fetch_feedback_rows()
            status_rows = await repository.fetch_status_rows()
    except (ConfigurationError, DatabaseError, RuntimeError) as e:
        report_failure(JOB_NAME, e)
        return EXIT_ERROR

    labels = derive_feedback_labels(feedback_rows, status_rows)
    payload = build_export(labels)
    try:
        write_export(args.out, payload)
    except OSError as e:
        report_failure(JOB_NAME, e)
        return EXIT_ERROR

    meta = payload["_meta"]
    logger.info(
        "Feedback labels exported",
        path=str(args.out),
        total=meta["total"],
        positive=meta["positive"],
        negative=meta["negative"],
    )
    print(
        f"Exported {meta['total']} labels "
        f"({meta['positive']} positive, {meta['negative']} negative) to {args.out}"
    )
    return EXIT_OK
