"""
Default weight regimes, the weighted combination and star thresholds.

The combination here is the single scoring formula used by live scoring
and by offline re-scoring of persisted breakdowns.
"""

from intromatch.features.matching.domain.models import (
    COMPONENTS,
    NAME_MATCH_BOOST,
    ScoreBreakdown,
    WeightRegime,
    WeightVector,
)

WITH_EMBEDDINGS_WEIGHTS = WeightVector(
    embedding=0.25,
    semantic=0.10,
    tag_overlap=0.20,
    role_match=0.10,
    geo_match=0.05,
    relationship=0.10,
    personal_affinity=0.15,
    check_size=0.05,
)

WITHOUT_EMBEDDINGS_WEIGHTS = WeightVector(
    semantic=0.20,
    tag_overlap=0.35,
    role_match=0.15,
    geo_match=0.10,
    relationship=0.20,
)

DEFAULT_WEIGHTS: dict[WeightRegime, WeightVector] = {
    WeightRegime.WITH_EMBEDDINGS: WITH_EMBEDDINGS_WEIGHTS,
    WeightRegime.WITHOUT_EMBEDDINGS: WITHOUT_EMBEDDINGS_WEIGHTS,
}

# (minimum raw score, stars), highest first
STAR_THRESHOLDS: tuple[tuple[float, int], ...] = ((0.40, 3), (0.20, 2), (0.05, 1))


def select_regime(breakdown: ScoreBreakdown) -> WeightRegime:
    if breakdown.has_embedding:
        return WeightRegime.WITH_EMBEDDINGS
    return WeightRegime.WITHOUT_EMBEDDINGS


def weighted_score(breakdown: ScoreBreakdown, weights: WeightVector) -> float:
    """Weighted sum plus the name-mention boost, clamped to [0, 1]."""
    total = sum(weights.weight(name) * breakdown.component(name) for name in COMPONENTS)
    total += NAME_MATCH_BOOST * breakdown.name_match
    return min(max(total, 0.0), 1.0)


def score_to_stars(raw_score: float) -> int:
    for threshold, stars in STAR_THRESHOLDS:
        if raw_score >= threshold:
            return stars
    return 0
