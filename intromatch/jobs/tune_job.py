"""
Search for a better weight vector over persisted score breakdowns.

The output is a report for manual review; no configuration is changed.
"""

import argparse
from collections.abc import Sequence
from pathlib import Path

from intromatch.config import ConfigurationError, settings
from intromatch.db.helpers import DatabaseError
from intromatch.features.evaluation.dataset import load_dataset, load_label_set
from intromatch.features.evaluation.labels import LabelFileError, LabelResolutionError
from intromatch.features.evaluation.repository import EvaluationRepository
from intromatch.features.tuning.service import WeightTuner
from intromatch.infrastructure.observability.logging import get_logger

from .common import EXIT_ERROR, EXIT_OK, JobError, database_pool, report_failure

logger = get_logger(__name__)

JOB_NAME = "tune_weights"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=JOB_NAME, description="Tune scoring weights offline against labeled data."
    )
    parser.add_argument("--golden", type=Path, default=settings.EVAL_GOLDEN_SET_PATH)
    parser.add_argument("--feedback", type=Path, default=settings.EVAL_FEEDBACK_LABELS_PATH)
    return parser


async def run_tuning(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        async with database_pool("intromatch-tune") as pool:
            repository = EvaluationRepository(pool)
            label_set = await load_label_set(
                repository, args.golden, args.feedback, golden_required=False
            )
            if not len(label_set):
                raise JobError("No labels found. Add a golden set or export feedback labels.")

            dataset = await load_dataset(repository, label_set)
            if dataset.load_errors:
                logger.warning(
                    "Continuing without some conversations",
                    failed=[error.key for error in dataset.load_errors],
                )
            if not dataset.suggestion_count:
                raise JobError(
                    "No match suggestions found for labeled conversations. Generate matches first.",
                    "load_suggestions",
                )
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

    report = WeightTuner().tune(dataset)
    print(report.render())
    return EXIT_OK
