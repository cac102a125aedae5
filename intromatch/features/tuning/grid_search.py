"""
Grid search over the most influential weights.

The embedding, tag-overlap and personal-affinity weights are stepped over
[0.05, 0.45]; the remaining components keep their relative default
proportions and are scaled to fill what is left of the unit budget.
"""

from dataclasses import dataclass

from intromatch.features.evaluation.dataset import EvaluationDataset
from intromatch.features.matching.domain.models import COMPONENTS, WeightVector
from intromatch.infrastructure.observability.logging import get_logger

from .rescoring import mean_precision_at_5, mean_reciprocal_rank

logger = get_logger(__name__)

TUNABLE_COMPONENTS = ("embedding", "tagOverlap", "personalAffinity")
GRID_STEPS = tuple(round(0.05 * step, 2) for step in range(1, 10))
# Combinations at or above this share leave too little for the fixed components
MAX_TUNED_SHARE = 0.95


@dataclass(slots=True)
class Trial:
    weights: WeightVector
    mrr: float
    precision_at_5: float


@dataclass(slots=True)
class GridSearchResult:
    best: Trial
    trials: int


def evaluate_weights(dataset: EvaluationDataset, weights: WeightVector) -> Trial:
    return Trial(
        weights=weights,
        mrr=mean_reciprocal_rank(dataset, weights),
        precision_at_5=mean_precision_at_5(dataset, weights),
    )


def candidate_vector(base: WeightVector, tuned: dict[str, float]) -> WeightVector | None:
    """
    Fill `tuned` out to a full vector summing to 1.0.

    Returns None when the tuned weights leave no room for the fixed
    components or the base has no weight on them to scale.
    """
    tuned_total = round(sum(tuned.values()), 6)
    if tuned_total >= MAX_TUNED_SHARE - 1e-9:
        return None

    fixed = [name for name in COMPONENTS if name not in tuned]
    fixed_total = sum(base.weight(name) for name in fixed)
    if fixed_total <= 0:
        return None

    scale = (1.0 - tuned_total) / fixed_total
    values = dict(tuned)
    values.update({name: base.weight(name) * scale for name in fixed})
    return WeightVector.from_dict(values)


def grid_search(dataset: EvaluationDataset, base: WeightVector) -> GridSearchResult:
    """Best vector by mean MRR; the base vector wins unless strictly beaten."""
    best = evaluate_weights(dataset, base)
    trials = 0

    for embedding in GRID_STEPS:
        for tag_overlap in GRID_STEPS:
            for personal_affinity in GRID_STEPS:
                candidate = candidate_vector(
                    base,
                    dict(
                        zip(
                            TUNABLE_COMPONENTS,
                            (embedding, tag_overlap, personal_affinity),
                            strict=True,
                        )
                    ),
                )
                if candidate is None:
                    continue

                trials += 1
                mrr = mean_reciprocal_rank(dataset, candidate)
                if mrr > best.mrr:
                    best = Trial(candidate, mrr, mean_precision_at_5(dataset, candidate))

    logger.info("Grid search complete", trials=trials, best_mrr=round(best.mrr, 4))
    return GridSearchResult(best=best, trials=trials)
