"""
Evaluate ranking quality of persisted suggestions against labeled data.

Exit codes: 0 when mean MRR meets the threshold, 1 when it does not,
2 on configuration, label resolution or data loading errors.
"""

import argparse
from collections.abc import Sequence
from pathlib import Path

from intromatch.config import ConfigurationError, settings
from intromatch.db.helpers import DatabaseError
from intromatch.features.evaluation.dataset import load_dataset, load_label_set
from intromatch.features.evaluation.harness import EvaluationHarness
from intromatch.features.evaluation.labels import LabelFileError, LabelResolutionError
from intromatch.features.evaluation.repository import EvaluationRepository
from intromatch.infrastructure.observability.logging import get_logger

from .common import (
    EXIT_ERROR,
    EXIT_GATE_FAILED,
    EXIT_OK,
    JobError,
    database_pool,
    report_failure,
)

logger = get_logger(__name__)

JOB_NAME = "evaluate_matching"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=JOB_NAME, description="Evaluate match ranking quality against labeled data."
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=settings.EVAL_MRR_THRESHOLD,
        help="Minimum mean MRR for a passing run (default: %(default)s)",
    )
    parser.add_argument("--golden", type=Path, default=settings.EVAL_GOLDEN_SET_PATH)
    parser.add_argument("--feedback", type=Path, default=settings.EVAL_FEEDBACK_LABELS_PATH)
    return parser


async def run_evaluation(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger.info("Starting evaluation", threshold=args.threshold, golden=str(args.golden))

    try:
        async with database_pool("intromatch-evaluate") as pool:
            repository = EvaluationRepository(pool)
            label_set = await load_label_set(repository, args.golden, args.feedback)
            if not len(label_set):
                raise JobError("No labels found. Add a golden set or export feedback labels.")

            dataset = await load_dataset(repository, label_set)
            if dataset.load_errors:
                failed = ", ".join(error.key for error in dataset.load_errors)
                raise JobError(f"Failed to load suggestions for: {failed}", "load_suggestions")
    except (
        ConfigurationError,
        DatabaseError,
        JobError,
        LabelFileError,
        LabelResolutionError,
        RuntimeError,
    ) as e:
        report_failure(JOB_NAME, e)
        return EXIT_ERROR

    report = EvaluationHarness(threshold=args.threshold).evaluate(dataset)
    print(report.render())
    return EXIT_OK if report.passed else EXIT_GATE_FAILED
