"""
Evaluation harness - per-conversation ranking metrics, macro averages with
bootstrap intervals, and the MRR quality gate.
"""

import random
from dataclasses import dataclass, field

from intromatch.config import settings
from intromatch.infrastructure.observability.logging import get_logger

from .bootstrap import ConfidenceInterval, bootstrap_ci
from .dataset import EvaluationDataset
from .metrics import ConversationMetrics, EmptySlicePolicy, evaluate_ranking, mean

logger = get_logger(__name__)

RULE = "═" * 62


def passes_gate(mean_mrr: float, threshold: float) -> bool:
    return mean_mrr >= threshold


@dataclass(frozen=True, slots=True)
class MetricSummary:
    mean: float
    interval: ConfidenceInterval


@dataclass(slots=True)
class EvaluationReport:
    conversations: list[ConversationMetrics]
    threshold: float
    precision_at_5: MetricSummary
    precision_at_10: MetricSummary
    hit_rate_at_1: MetricSummary
    mrr: MetricSummary
    ndcg_at_5: MetricSummary
    warnings: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return passes_gate(self.mrr.mean, self.threshold)

    def render(self) -> str:
        lines = ["", RULE, "           MATCHING ALGORITHM EVALUATION REPORT", RULE, ""]

        for result in self.conversations:
            lines.extend(
                [
                    f"▸ {result.title}",
                    f"  Matches returned: {result.total_matches}",
                    f"  Precision@5:  {result.precision_at_5 * 100:.1f}%",
                    f"  Precision@10: {result.precision_at_10 * 100:.1f}%",
                    f"  Hit-rate@1:   {'YES' if result.hit_rate_at_1 else 'NO'}",
                    f"  MRR:          {result.reciprocal_rank:.3f}",
                    f"  NDCG@5:       {result.ndcg_at_5 * 100:.1f}%",
                ]
            )
            if result.false_positives_in_top_5:
                lines.append(f"  FP in top 5:  {', '.join(result.false_positives_in_top_5)}")
            if result.missed_positives:
                lines.append(f"  Missed:       {', '.join(result.missed_positives)}")
            lines.append("")

        lines.extend(
            [
                "── Macro Averages (90% bootstrap CI) ──────────────────────",
                f"  Mean Precision@5:  {self.precision_at_5.interval.format()}",
                f"  Mean Precision@10: {self.precision_at_10.interval.format()}",
                f"  Mean Hit-rate@1:   {self.hit_rate_at_1.interval.format()}",
                f"  Mean MRR:          {self.mrr.interval.format(percent=False)}",
                f"  Mean NDCG@5:       {self.ndcg_at_5.interval.format()}",
                "",
            ]
        )
        for warning in self.warnings:
            lines.append(f"  warning: {warning}")

        comparison = ">=" if self.passed else "<"
        verdict = "PASS" if self.passed else "FAIL"
        lines.append(
            f"{verdict}: Mean MRR ({self.mrr.mean:.3f}) {comparison} "
            f"threshold ({self.threshold:.3f})"
        )
        return "\n".join(lines)


class EvaluationHarness:
    def __init__(
        self,
        threshold: float | None = None,
        bootstrap_samples: int | None = None,
        rng: random.Random | None = None,
        empty_policy: EmptySlicePolicy | None = None,
    ):
        self.threshold = settings.EVAL_MRR_THRESHOLD if threshold is None else threshold
        self.bootstrap_samples = bootstrap_samples or settings.EVAL_BOOTSTRAP_SAMPLES
        self.rng = rng or random.Random(settings.EVAL_RANDOM_SEED)
        self.empty_policy = empty_policy or EmptySlicePolicy(settings.EVAL_PRECISION_EMPTY_POLICY)

    def evaluate_conversations(self, dataset: EvaluationDataset) -> list[ConversationMetrics]:
        label_set = dataset.label_set
        return [
            evaluate_ranking(
                conversation_id=conversation_id,
                title=label_set.title(conversation_id),
                ranked=dataset.ranked_contact_ids(conversation_id),
                positives=label_set.positives(conversation_id),
                negatives=label_set.negatives(conversation_id),
                names=label_set.contact_names,
                empty_policy=self.empty_policy,
            )
            for conversation_id in dataset.conversation_ids()
        ]

    def summarize(self, values: list[float]) -> MetricSummary:
        return MetricSummary(
            mean=mean(values),
            interval=bootstrap_ci(values, self.bootstrap_samples, self.rng),
        )

    def evaluate(self, dataset: EvaluationDataset) -> EvaluationReport:
        results = self.evaluate_conversations(dataset)
        warnings = []
        if dataset.warning_count:
            warnings.append(f"{dataset.warning_count} suggestion rows had incomplete score maps")

        report = EvaluationReport(
            conversations=results,
            threshold=self.threshold,
            precision_at_5=self.summarize([r.precision_at_5 for r in results]),
            precision_at_10=self.summarize([r.precision_at_10 for r in results]),
            hit_rate_at_1=self.summarize([r.hit_rate_at_1 for r in results]),
            mrr=self.summarize([r.reciprocal_rank for r in results]),
            ndcg_at_5=self.summarize([r.ndcg_at_5 for r in results]),
            warnings=warnings,
        )
        logger.info(
            "Evaluation complete",
            conversations=len(results),
            mean_mrr=round(report.mrr.mean, 4),
            threshold=self.threshold,
            passed=report.passed,
        )
        return report
