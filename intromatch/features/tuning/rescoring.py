"""
Offline re-scoring of persisted breakdowns under a candidate weight vector.

Only already-computed component scores are used here; nothing is
re-extracted and nothing is written back.
"""

from intromatch.features.evaluation.dataset import EvaluationDataset
from intromatch.features.evaluation.metrics import mean, precision_at_k, reciprocal_rank
from intromatch.features.matching.domain.models import ScoreBreakdown, WeightVector
from intromatch.features.matching.pipeline.scoring.weights import weighted_score


def re_score(breakdown: ScoreBreakdown, weights: WeightVector) -> float:
    """Raw score the live scorer would produce for `breakdown` under `weights`."""
    return weighted_score(breakdown, weights)


def rank_by_weights(dataset: EvaluationDataset, weights: WeightVector) -> dict[str, list[str]]:
    """Contact ids per conversation, best re-scored first (ties keep stored order)."""
    rankings: dict[str, list[str]] = {}
    for conversation_id in dataset.conversation_ids():
        rows = dataset.suggestions[conversation_id]
        scored = sorted(rows, key=lambda row: re_score(row.breakdown, weights), reverse=True)
        rankings[conversation_id] = [row.contact_id for row in scored]
    return rankings


def reciprocal_ranks(dataset: EvaluationDataset, weights: WeightVector) -> list[float]:
    """Per-conversation reciprocal rank, skipping conversations with no positives."""
    values = []
    for conversation_id, ranked in rank_by_weights(dataset, weights).items():
        positives = dataset.label_set.positives(conversation_id)
        if positives:
            values.append(reciprocal_rank(ranked, positives))
    return values


def mean_reciprocal_rank(dataset: EvaluationDataset, weights: WeightVector) -> float:
    return mean(reciprocal_ranks(dataset, weights))


def mean_precision_at_5(dataset: EvaluationDataset, weights: WeightVector) -> float:
    values = []
    for conversation_id, ranked in rank_by_weights(dataset, weights).items():
        positives = dataset.label_set.positives(conversation_id)
        if positives:
            values.append(precision_at_k(ranked, positives, 5))
    return mean(values)
