"""
Ranking-quality metrics over a single ranked list with binary relevance.

All functions are pure and storage-agnostic; the evaluation harness and
the weight tuner both call them.
"""

import math
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum


class EmptySlicePolicy(StrEnum):
    """Precision@k when a conversation has no positives and nothing was ranked."""

    VACUOUS_PASS = "vacuous_pass"
    ZERO = "zero"


def precision_at_k(
    ranked: Sequence[str],
    positives: Collection[str],
    k: int,
    empty_policy: EmptySlicePolicy = EmptySlicePolicy.VACUOUS_PASS,
) -> float:
    """
    Hits in the top k, normalized by min(k, |positives|).

    An empty top-k scores 1.0 under the vacuous-pass policy when there are
    no positives to find, and 0 otherwise.
    """
    top_k = ranked[:k]
    if not top_k:
        if not positives and empty_policy == EmptySlicePolicy.VACUOUS_PASS:
            return 1.0
        return 0.0
    hits = sum(1 for contact_id in top_k if contact_id in positives)
    return hits / min(k, len(positives) or 1)


def hit_rate_at_1(ranked: Sequence[str], positives: Collection[str]) -> float:
    return 1.0 if ranked and ranked[0] in positives else 0.0


def reciprocal_rank(ranked: Sequence[str], positives: Collection[str]) -> float:
    for index, contact_id in enumerate(ranked):
        if contact_id in positives:
            return 1 / (index + 1)
    return 0.0


def ndcg_at_k(ranked: Sequence[str], positives: Collection[str], k: int) -> float:
    dcg = sum(
        1 / math.log2(index + 2)
        for index, contact_id in enumerate(ranked[:k])
        if contact_id in positives
    )
    ideal_count = min(len(positives), k)
    idcg = sum(1 / math.log2(index + 2) for index in range(ideal_count))
    return dcg / idcg if idcg > 0 else 0.0


def mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


@dataclass(slots=True)
class ConversationMetrics:
    conversation_id: str
    title: str
    total_matches: int
    positive_count: int
    precision_at_5: float
    precision_at_10: float
    hit_rate_at_1: float
    reciprocal_rank: float
    ndcg_at_5: float
    false_positives_in_top_5: list[str] = field(default_factory=list)
    missed_positives: list[str] = field(default_factory=list)


def evaluate_ranking(
    conversation_id: str,
    title: str,
    ranked: Sequence[str],
    positives: Collection[str],
    negatives: Collection[str] = (),
    names: dict[str, str] | None = None,
    empty_policy: EmptySlicePolicy = EmptySlicePolicy.VACUOUS_PASS,
) -> ConversationMetrics:
    """
    Compute every per-conversation metric plus the diagnostics lists.

    Args:
        ranked: Contact ids ordered by descending raw score
        positives: Contact ids labeled relevant
        negatives: Contact ids labeled not relevant
        names: Contact id to display name, used for diagnostics
    """
    names = names or {}
    ranked_set = set(ranked)
    return ConversationMetrics(
        conversation_id=conversation_id,
        title=title,
        total_matches=len(ranked),
        positive_count=len(positives),
        precision_at_5=precision_at_k(ranked, positives, 5, empty_policy),
        precision_at_10=precision_at_k(ranked, positives, 10, empty_policy),
        hit_rate_at_1=hit_rate_at_1(ranked, positives),
        reciprocal_rank=reciprocal_rank(ranked, positives),
        ndcg_at_5=ndcg_at_k(ranked, positives, 5),
        false_positives_in_top_5=[
            names.get(contact_id, contact_id)
            for contact_id in ranked[:5]
            if contact_id in negatives
        ],
        missed_positives=sorted(
            names.get(contact_id, contact_id)
            for contact_id in positives
            if contact_id not in ranked_set
        ),
    )
