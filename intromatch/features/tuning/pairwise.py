"""
Pairwise logistic-regression ranker.

Each training example is the component-wise difference between a
positive and a negative contact's breakdown within one conversation.
A linear model is fitted by SGD on the logistic pairwise loss, then
clamped to non-negative weights and renormalized.
"""

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass

from intromatch.features.evaluation.dataset import EvaluationDataset
from intromatch.features.matching.domain.models import COMPONENTS, WeightVector
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MIN_PAIRS = 10


def build_pairs(dataset: EvaluationDataset) -> list[list[float]]:
    """Breakdown differences for every (positive, negative) pair per conversation."""
    pairs: list[list[float]] = []
    labels = dataset.label_set.labels

    for conversation_id in dataset.conversation_ids():
        rows = dataset.suggestions[conversation_id]
        positives, negatives = [], []
        for row in rows:
            label = labels.get((conversation_id, row.contact_id))
            if label is None:
                continue
            (positives if label.is_positive else negatives).append(row.breakdown)

        for positive in positives:
            for negative in negatives:
                pairs.append(
                    [positive.component(name) - negative.component(name) for name in COMPONENTS]
                )
    return pairs


def _sigmoid(value: float) -> float:
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp_value = math.exp(value)
    return exp_value / (1.0 + exp_value)


class PairwiseRanker:
    """Online SGD on the logistic pairwise loss with L2 regularization."""

    LEARNING_RATE = 0.05
    L2_COEFFICIENT = 0.01
    EPOCHS = 300

    def __init__(
        self,
        learning_rate: float = LEARNING_RATE,
        l2_coefficient: float = L2_COEFFICIENT,
        epochs: int = EPOCHS,
        rng: random.Random | None = None,
    ):
        self.learning_rate = learning_rate
        self.l2_coefficient = l2_coefficient
        self.epochs = epochs
        self.rng = rng or random.Random()

    def fit(self, pairs: Sequence[Sequence[float]]) -> WeightVector | None:
        """
        Train from uniform weights and return a normalized vector.

        Returns None when every weight clamps to zero.
        """
        pairs = [list(delta) for delta in pairs]
        weights = [1.0 / len(COMPONENTS)] * len(COMPONENTS)

        for _ in range(self.epochs):
            self.rng.shuffle(pairs)
            for delta in pairs:
                prediction = _sigmoid(sum(d * w for d, w in zip(delta, weights, strict=True)))
                error = 1.0 - prediction
                weights = [
                    w + self.learning_rate * (error * d - self.l2_coefficient * w)
                    for d, w in zip(delta, weights, strict=True)
                ]

        clamped = WeightVector.from_dict(
            {name: max(w, 0.0) for name, w in zip(COMPONENTS, weights, strict=True)}
        )
        if clamped.total() == 0:
            return None
        return clamped.normalized()


@dataclass(slots=True)
class LearnedRankerResult:
    pair_count: int
    weights: WeightVector | None = None
    skipped_reason: str | None = None

    @property
    def available(self) -> bool:
        return self.weights is not None


def learn_weights(
    dataset: EvaluationDataset,
    ranker: PairwiseRanker | None = None,
) -> LearnedRankerResult:
    """Fit the pairwise ranker, or report why it was skipped. Never raises for thin data."""
    pairs = build_pairs(dataset)
    if len(pairs) < MIN_PAIRS:
        reason = f"Only {len(pairs)} pairwise comparisons available (need >= {MIN_PAIRS})"
        logger.info("Learned ranker skipped", pairs=len(pairs), minimum=MIN_PAIRS)
        return LearnedRankerResult(pair_count=len(pairs), skipped_reason=reason)

    ranker = ranker or PairwiseRanker()
    logger.info("Training pairwise ranker", pairs=len(pairs), epochs=ranker.epochs)
    weights = ranker.fit(pairs)
    if weights is None:
        return LearnedRankerResult(
            pair_count=len(pairs),
            skipped_reason="All learned weights clamped to zero",
        )
    return LearnedRankerResult(pair_count=len(pairs), weights=weights)
