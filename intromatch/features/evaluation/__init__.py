"""
Offline evaluation of ranking quality.

Pure metric functions and the bootstrap live in `metrics` and `bootstrap`
so the weight tuner can reuse them without touching storage.
"""

from .bootstrap import ConfidenceInterval, bootstrap_ci, intervals_overlap
from .harness import EvaluationHarness, EvaluationReport, passes_gate
from .metrics import (
    EmptySlicePolicy,
    hit_rate_at_1,
    ndcg_at_k,
    precision_at_k,
    reciprocal_rank,
)

__all__ = [
    "ConfidenceInterval",
    "EmptySlicePolicy",
    "EvaluationHarness",
    "EvaluationReport",
    "bootstrap_ci",
    "hit_rate_at_1",
    "intervals_overlap",
    "ndcg_at_k",
    "passes_gate",
    "precision_at_k",
    "reciprocal_rank",
]
