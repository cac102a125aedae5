"""
Assembles the fixed snapshot evaluated by the harness and the tuner:
a resolved label set plus the persisted suggestions of every labeled
conversation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from intromatch.config import settings
from intromatch.infrastructure.batching import BatchItemError, run_in_batches
from intromatch.infrastructure.observability.logging import get_logger

from .labels import (
    LabelSet,
    load_feedback_labels,
    load_golden_set,
    merge_labels,
    names_to_resolve,
    resolve_golden_labels,
)
from .repository import EvaluationRepository, StoredSuggestion

logger = get_logger(__name__)


@dataclass(slots=True)
class EvaluationDataset:
    label_set: LabelSet
    suggestions: dict[str, list[StoredSuggestion]] = field(default_factory=dict)
    load_errors: list[BatchItemError] = field(default_factory=list)

    @property
    def suggestion_count(self) -> int:
        return sum(len(rows) for rows in self.suggestions.values())

    @property
    def warning_count(self) -> int:
        return sum(1 for rows in self.suggestions.values() for row in rows if row.warnings)

    def conversation_ids(self) -> list[str]:
        return [cid for cid in self.label_set.conversation_ids() if cid in self.suggestions]

    def ranked_contact_ids(self, conversation_id: str) -> list[str]:
        return [row.contact_id for row in self.suggestions.get(conversation_id, [])]


async def load_label_set(
    repository: EvaluationRepository,
    golden_path: Path,
    feedback_path: Path,
    golden_required: bool = True,
) -> LabelSet:
    """
    Resolve the golden set, merge feedback labels and attach display names.

    Raises:
        LabelFileError: If a label file is unreadable or malformed
        LabelResolutionError: If any golden-set name does not resolve
    """
    entries = load_golden_set(golden_path, required=golden_required)
    titles, names = names_to_resolve(entries)
    conversation_ids = await repository.resolve_conversation_titles(titles)
    contact_ids = await repository.resolve_contact_names(names)
    golden = resolve_golden_labels(entries, conversation_ids, contact_ids)

    label_set = merge_labels(golden, load_feedback_labels(feedback_path))
    label_set.conversation_titles = await repository.fetch_conversation_titles(
        label_set.conversation_ids()
    )
    label_set.contact_names = await repository.fetch_contact_names(
        list(dict.fromkeys(contact_id for _, contact_id in label_set.labels))
    )

    logger.info(
        "Label set resolved",
        golden=len(golden),
        total=len(label_set),
        positive=label_set.positive_count,
        conversations=len(label_set.conversation_ids()),
    )
    return label_set


async def load_dataset(
    repository: EvaluationRepository,
    label_set: LabelSet,
    concurrency: int | None = None,
    delay_seconds: float | None = None,
) -> EvaluationDataset:
    """Fetch suggestions for every labeled conversation in bounded batches."""
    outcome = await run_in_batches(
        label_set.conversation_ids(),
        repository.fetch_suggestions,
        concurrency=concurrency or settings.EVAL_BATCH_CONCURRENCY,
        delay_seconds=(
            settings.EVAL_BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds
        ),
        operation="load_suggestions",
    )
    dataset = EvaluationDataset(
        label_set=label_set,
        suggestions=outcome.results,
        load_errors=outcome.errors,
    )
    if outcome.failed:
        logger.warning(
            "Some conversations failed to load",
            failed=[error.key for error in outcome.errors],
        )
    logger.info(
        "Evaluation dataset loaded",
        conversations=len(dataset.suggestions),
        suggestions=dataset.suggestion_count,
        incomplete_rows=dataset.warning_count,
        load_errors=len(dataset.load_errors),
    )
    return dataset
