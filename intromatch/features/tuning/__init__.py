"""
Offline weight tuning over persisted score breakdowns.

Results are advisory; adopting a vector means editing the scoring weights.
"""

from .grid_search import GridSearchResult, Trial, grid_search
from .pairwise import LearnedRankerResult, PairwiseRanker, build_pairs, learn_weights
from .rescoring import mean_reciprocal_rank, rank_by_weights, re_score
from .service import TuningReport, TuningVerdict, WeightTuner

__all__ = [
    "GridSearchResult",
    "LearnedRankerResult",
    "PairwiseRanker",
    "Trial",
    "TuningReport",
    "TuningVerdict",
    "WeightTuner",
    "build_pairs",
    "grid_search",
    "learn_weights",
    "mean_reciprocal_rank",
    "rank_by_weights",
    "re_score",
]
