"""
Domain subpackage for the matching feature.
"""

from .models import (
    COMPONENTS,
    ConfidenceBand,
    ConfidenceScores,
    ContactProfile,
    ConversationSignals,
    MatchSuggestion,
    ScoreBreakdown,
    ScoredMatch,
    SuggestionStatus,
    Thesis,
    WeightRegime,
    WeightVector,
)

__all__ = [
    "COMPONENTS",
    "ConfidenceBand",
    "ConfidenceScores",
    "ContactProfile",
    "ConversationSignals",
    "MatchSuggestion",
    "ScoreBreakdown",
    "ScoredMatch",
    "SuggestionStatus",
    "Thesis",
    "WeightRegime",
    "WeightVector",
]
