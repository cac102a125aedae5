"""
HTTP response models for the matching routes.
"""

from pydantic import BaseModel, Field

from intromatch.features.matching.domain.models import MatchSuggestion


class MatchSuggestionResponse(BaseModel):
    id: str | None = None
    conversation_id: str
    contact_id: str
    contact_name: str | None = None
    score: int = Field(..., ge=0, le=3)
    raw_score: float = Field(..., ge=0.0, le=1.0)
    score_breakdown: dict[str, float] = Field(default_factory=dict)
    confidence_scores: dict[str, float] = Field(default_factory=dict)
    confidence_band: str
    reasons: list[str] = Field(default_factory=list)
    justification: str | None = None
    ai_explanation: str | None = None
    match_version: str
    status: str

    @classmethod
    def from_domain(cls, suggestion: MatchSuggestion) -> "MatchSuggestionResponse":
        data = suggestion.to_dict()
        data["confidence_band"] = str(suggestion.confidence_scores.band)
        return cls(**data)


class GenerateMatchesResponse(BaseModel):
    conversation_id: str
    contacts_scored: int
    explained: int
    matches: list[MatchSuggestionResponse]


class SuggestionListResponse(BaseModel):
    conversation_id: str
    matches: list[MatchSuggestionResponse]
