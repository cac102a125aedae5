"""
Weight tuner - compares the default vector against grid-search and
learned-ranker candidates and reports whether any improvement holds up
under bootstrap resampling.

The tuner is advisory: it prints a candidate vector for a human to adopt
into scoring configuration and never writes anything.
"""

import random
from dataclasses import dataclass
from enum import StrEnum

from intromatch.config import settings
from intromatch.features.evaluation.bootstrap import (
    ConfidenceInterval,
    bootstrap_ci,
    intervals_overlap,
)
from intromatch.features.evaluation.dataset import EvaluationDataset
from intromatch.features.matching.domain.models import COMPONENTS, WeightVector
from intromatch.features.matching.pipeline.scoring.weights import WITH_EMBEDDINGS_WEIGHTS
from intromatch.infrastructure.observability.logging import get_logger

from .grid_search import GridSearchResult, Trial, evaluate_weights, grid_search
from .pairwise import LearnedRankerResult, PairwiseRanker, learn_weights
from .rescoring import reciprocal_ranks

logger = get_logger(__name__)

MIN_MRR_IMPROVEMENT = 0.001
DELTA_DISPLAY_THRESHOLD = 0.005
RULE = "═" * 51


class TuningVerdict(StrEnum):
    SIGNIFICANT = "significant"
    MAY_BE_NOISE = "may_be_noise"
    NO_IMPROVEMENT = "no_improvement"


class TuningStrategy(StrEnum):
    GRID_SEARCH = "grid_search"
    LEARNED_RANKER = "learned_ranker"


def decide_verdict(
    baseline_mrr: float,
    best_mrr: float,
    baseline_ci: ConfidenceInterval,
    best_ci: ConfidenceInterval,
) -> TuningVerdict:
    if best_mrr <= baseline_mrr + MIN_MRR_IMPROVEMENT:
        return TuningVerdict.NO_IMPROVEMENT
    if intervals_overlap(baseline_ci, best_ci):
        return TuningVerdict.MAY_BE_NOISE
    return TuningVerdict.SIGNIFICANT


def weight_deltas(best: WeightVector, base: WeightVector) -> dict[str, float]:
    """Per-component change from the base vector, only where it is visible."""
    deltas = {name: best.weight(name) - base.weight(name) for name in COMPONENTS}
    return {name: delta for name, delta in deltas.items() if abs(delta) > DELTA_DISPLAY_THRESHOLD}


@dataclass(slots=True)
class TuningReport:
    label_count: int
    positive_count: int
    suggestion_count: int
    conversation_count: int
    base_weights: WeightVector
    baseline: Trial
    grid: GridSearchResult
    learned: LearnedRankerResult
    learned_trial: Trial | None
    strategy: TuningStrategy
    best: Trial
    baseline_ci: ConfidenceInterval
    best_ci: ConfidenceInterval
    verdict: TuningVerdict

    @property
    def has_improvement(self) -> bool:
        return self.verdict != TuningVerdict.NO_IMPROVEMENT

    def deltas(self) -> dict[str, float]:
        return weight_deltas(self.best.weights, self.base_weights)

    def render(self) -> str:
        lines = [
            f"Loaded {self.label_count} labels ({self.positive_count} positive)",
            f"Fetched {self.suggestion_count} match suggestions across "
            f"{self.conversation_count} conversations",
            "",
            f"Baseline MRR:          {self.baseline.mrr:.3f}",
            f"Baseline Precision@5:  {self.baseline.precision_at_5 * 100:.1f}%",
            "",
            f"Evaluated {self.grid.trials} weight combinations",
            "",
        ]

        if self.learned_trial is not None and self.learned.weights is not None:
            lines.append(f"Learned ranker results ({self.learned.pair_count} pairs):")
            for name in COMPONENTS:
                lines.append(f"  {name:<20} {self.learned.weights.weight(name):.3f}")
            lines.append(f"  MRR:          {self.learned_trial.mrr:.3f}")
            lines.append(f"  Precision@5:  {self.learned_trial.precision_at_5 * 100:.1f}%")
        else:
            lines.append(f"{self.learned.skipped_reason}. Skipping learned ranker.")
        lines.append("")

        if self.strategy == TuningStrategy.LEARNED_RANKER:
            lines.append("Learned ranker outperforms grid search - using learned weights.")
        elif self.learned_trial is not None:
            lines.append("Grid search outperforms learned ranker - using grid search weights.")
        else:
            lines.append("Using grid search results.")

        lines.extend(["", RULE, "           BEST WEIGHTS FOUND", RULE, ""])
        deltas = self.deltas()
        for name in COMPONENTS:
            tag = f" ({deltas[name]:+.2f})" if name in deltas else ""
            lines.append(f"  {name:<20} {self.best.weights.weight(name):.3f}{tag}")

        lines.extend(
            [
                "",
                f"  Sum: {self.best.weights.total():.3f}",
                f"  MRR:          {self.best.mrr:.3f} (baseline: {self.baseline.mrr:.3f})",
                f"  Precision@5:  {self.best.precision_at_5 * 100:.1f}% "
                f"(baseline: {self.baseline.precision_at_5 * 100:.1f}%)",
                "",
                f"  Baseline MRR 90% CI: [{self.baseline_ci.lo:.3f}, {self.baseline_ci.hi:.3f}]",
                f"  Best MRR 90% CI:     [{self.best_ci.lo:.3f}, {self.best_ci.hi:.3f}]",
                "",
            ]
        )

        if self.verdict == TuningVerdict.SIGNIFICANT:
            lines.append("  CIs do NOT overlap - improvement is statistically significant.")
        elif self.verdict == TuningVerdict.MAY_BE_NOISE:
            lines.append(
                "  CIs overlap - improvement may be noise. Consider expanding the golden set."
            )
        else:
            lines.append(
                "No significant improvement over current weights. "
                "Current weights are optimal for this dataset."
            )

        if self.has_improvement:
            lines.extend(["", "Copy-paste ready (with-embeddings regime):", "WeightVector("])
            printable = self.best.weights.rounded(3)
            for name in COMPONENTS:
                attribute = _attribute_name(name)
                lines.append(f"    {attribute}={printable.weight(name):.3f},")
            lines.append(")")

        lines.append(f"Verdict: {self.verdict.value}")
        return "\n".join(lines)


def _attribute_name(component: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in component)


class WeightTuner:
    """Search for a weight vector that beats the base vector on mean MRR."""

    def __init__(
        self,
        base_weights: WeightVector | None = None,
        bootstrap_samples: int | None = None,
        rng: random.Random | None = None,
    ):
        self.base_weights = base_weights or WITH_EMBEDDINGS_WEIGHTS
        self.bootstrap_samples = bootstrap_samples or settings.EVAL_BOOTSTRAP_SAMPLES
        self.rng = rng or random.Random(settings.EVAL_RANDOM_SEED)

    def tune(self, dataset: EvaluationDataset) -> TuningReport:
        baseline = evaluate_weights(dataset, self.base_weights)
        grid = grid_search(dataset, self.base_weights)

        learned = learn_weights(dataset, PairwiseRanker(rng=self.rng))
        learned_trial = (
            evaluate_weights(dataset, learned.weights) if learned.weights is not None else None
        )

        best, strategy = grid.best, TuningStrategy.GRID_SEARCH
        if learned_trial is not None and learned_trial.mrr > grid.best.mrr:
            best, strategy = learned_trial, TuningStrategy.LEARNED_RANKER

        baseline_ci = bootstrap_ci(
            reciprocal_ranks(dataset, self.base_weights), self.bootstrap_samples, self.rng
        )
        best_ci = bootstrap_ci(
            reciprocal_ranks(dataset, best.weights), self.bootstrap_samples, self.rng
        )
        verdict = decide_verdict(baseline.mrr, best.mrr, baseline_ci, best_ci)

        label_set = dataset.label_set
        report = TuningReport(
            label_count=len(label_set),
            positive_count=label_set.positive_count,
            suggestion_count=dataset.suggestion_count,
            conversation_count=len(dataset.conversation_ids()),
            base_weights=self.base_weights,
            baseline=baseline,
            grid=grid,
            learned=learned,
            learned_trial=learned_trial,
            strategy=strategy,
            best=best,
            baseline_ci=baseline_ci,
            best_ci=best_ci,
            verdict=verdict,
        )
        logger.info(
            "Weight tuning complete",
            baseline_mrr=round(baseline.mrr, 4),
            best_mrr=round(best.mrr, 4),
            strategy=strategy.value,
            verdict=verdict.value,
        )
        return report
