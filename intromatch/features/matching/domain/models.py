"""
Domain models for the matching feature.

These dataclasses describe the inputs the scorer reads (conversation
signals, contact profiles), the fixed-schema score records it produces,
and the persisted suggestion shape shared with evaluation and tuning.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any

# Wire names of the weighted components, in report order.
COMPONENTS: tuple[str, ...] = (
    "embedding",
    "semantic",
    "tagOverlap",
    "roleMatch",
    "geoMatch",
    "relationship",
    "personalAffinity",
    "checkSize",
)
NAME_MATCH_KEY = "nameMatch"
NAME_MATCH_BOOST = 0.3

_ATTRIBUTE_BY_COMPONENT = {
    "embedding": "embedding",
    "semantic": "semantic",
    "tagOverlap": "tag_overlap",
    "roleMatch": "role_match",
    "geoMatch": "geo_match",
    "relationship": "relationship",
    "personalAffinity": "personal_affinity",
    "checkSize": "check_size",
}


class SuggestionStatus(StrEnum):
    PENDING = "pending"
    PROMISED = "promised"
    ACCEPTED = "accepted"
    INTRO_MADE = "intro_made"
    MAYBE = "maybe"
    DISMISSED = "dismissed"


class WeightRegime(StrEnum):
    """Which default weight vector applies to a pair."""

    WITH_EMBEDDINGS = "with_embeddings"
    WITHOUT_EMBEDDINGS = "without_embeddings"


class ConfidenceBand(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_value(cls, value: float) -> "ConfidenceBand":
        if value >= 0.8:
            return cls.HIGH
        if value >= 0.5:
            return cls.MEDIUM
        return cls.LOW


@dataclass(slots=True)
class ConversationSignals:
    """Tags and context extracted from one conversation version."""

    conversation_id: str
    sectors: list[str] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)
    geos: list[str] = field(default_factory=list)
    product_keywords: list[str] = field(default_factory=list)
    technology_keywords: list[str] = field(default_factory=list)
    investor_types: list[str] = field(default_factory=list)
    check_sizes: list[str] = field(default_factory=list)
    personal_interests: list[str] = field(default_factory=list)
    target_person: str | None = None
    mentioned_people: list[str] = field(default_factory=list)
    context_embedding: list[float] | None = None

    @property
    def tags(self) -> list[str]:
        """Conversation tags used for overlap: sectors, stages, geos and keywords."""
        return [
            *self.sectors,
            *self.stages,
            *self.geos,
            *self.product_keywords,
            *self.technology_keywords,
        ]

    @property
    def person_names(self) -> list[str]:
        names = [self.target_person] if self.target_person else []
        names.extend(name for name in self.mentioned_people if name and name not in names)
        return names

    @property
    def is_empty(self) -> bool:
        return not (self.tags or self.investor_types or self.person_names or self.check_sizes)


@dataclass(slots=True)
class Thesis:
    sectors: list[str] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)
    geos: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ContactProfile:
    """A relationship-graph contact as read from the contact store."""

    id: str
    name: str
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company: str | None = None
    location: str | None = None
    bio: str | None = None
    investor_notes: str | None = None
    theses: list[Thesis] = field(default_factory=list)
    contact_types: list[str] = field(default_factory=list)
    is_investor: bool = False
    relationship_strength: int | None = None
    bio_embedding: list[float] | None = None
    thesis_embedding: list[float] | None = None
    check_size_min: float | None = None
    check_size_max: float | None = None
    personal_interests: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str | None:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return None

    @property
    def thesis_sectors(self) -> list[str]:
        return [s for thesis in self.theses for s in thesis.sectors]

    @property
    def thesis_stages(self) -> list[str]:
        return [s for thesis in self.theses for s in thesis.stages]

    @property
    def thesis_geos(self) -> list[str]:
        return [g for thesis in self.theses for g in thesis.geos]


def _coerce_unit(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(max(number, 0.0), 1.0)


@dataclass(slots=True)
class ScoreBreakdown:
    """
    Per-component scores for one (conversation, contact) pair.

    Every component is present. `embedding` is None when no embedding
    was available for the pair, which is different from a 0.0 similarity.
    `name_match` is the additive boost input and is not weighted.
    """

    embedding: float | None = None
    semantic: float = 0.0
    tag_overlap: float = 0.0
    role_match: float = 0.0
    geo_match: float = 0.0
    relationship: float = 0.0
    personal_affinity: float = 0.0
    check_size: float = 0.0
    name_match: float = 0.0

    def component(self, name: str) -> float:
        """Value of a weighted component, absent embedding counted as 0."""
        value = getattr(self, _ATTRIBUTE_BY_COMPONENT[name])
        return 0.0 if value is None else value

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dict(self) -> dict[str, float]:
        data = {
            name: getattr(self, _ATTRIBUTE_BY_COMPONENT[name])
            for name in COMPONENTS
            if getattr(self, _ATTRIBUTE_BY_COMPONENT[name]) is not None
        }
        if self.name_match > 0:
            data[NAME_MATCH_KEY] = self.name_match
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ScoreBreakdown":
        """Build from a persisted map; unknown keys are ignored, missing keys default."""
        data = data or {}
        kwargs: dict[str, Any] = {}
        for name, attribute in _ATTRIBUTE_BY_COMPONENT.items():
            if name in data and data[name] is not None:
                kwargs[attribute] = _coerce_unit(data[name])
        if data.get(NAME_MATCH_KEY) is not None:
            kwargs["name_match"] = _coerce_unit(data[NAME_MATCH_KEY])
        return cls(**kwargs)


@dataclass(slots=True)
class ConfidenceScores:
    """Evidence-based confidence for each component plus an overall value."""

    embedding: float = 0.0
    semantic: float = 0.0
    tag_overlap: float = 0.0
    role_match: float = 0.0
    geo_match: float = 0.0
    relationship: float = 0.0
    personal_affinity: float = 0.0
    check_size: float = 0.0
    overall: float = 0.0

    def component(self, name: str) -> float:
        return getattr(self, _ATTRIBUTE_BY_COMPONENT[name])

    @property
    def band(self) -> ConfidenceBand:
        return ConfidenceBand.from_value(self.overall)

    def to_dict(self) -> dict[str, float]:
        data = {name: round(self.component(name), 4) for name in COMPONENTS}
        data["overall"] = round(self.overall, 4)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ConfidenceScores":
        data = data or {}
        kwargs = {
            attribute: _coerce_unit(data[name])
            for name, attribute in _ATTRIBUTE_BY_COMPONENT.items()
            if data.get(name) is not None
        }
        if data.get("overall") is not None:
            kwargs["overall"] = _coerce_unit(data["overall"])
        return cls(**kwargs)


@dataclass(frozen=True, slots=True)
class WeightVector:
    """Non-negative weight per scored component. `nameMatch` is outside this budget."""

    embedding: float = 0.0
    semantic: float = 0.0
    tag_overlap: float = 0.0
    role_match: float = 0.0
    geo_match: float = 0.0
    relationship: float = 0.0
    personal_affinity: float = 0.0
    check_size: float = 0.0

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if value < 0:
                raise ValueError(f"Weight for {item.name} must be non-negative, got {value}")

    def weight(self, name: str) -> float:
        return getattr(self, _ATTRIBUTE_BY_COMPONENT[name])

    def total(self) -> float:
        return sum(self.weight(name) for name in COMPONENTS)

    def is_normalized(self, tolerance: float = 1e-6) -> bool:
        return abs(self.total() - 1.0) <= tolerance

    def normalized(self) -> "WeightVector":
        total = self.total()
        if total <= 0:
            raise ValueError("Cannot normalize a weight vector that sums to zero")
        return WeightVector.from_dict({name: self.weight(name) / total for name in COMPONENTS})

    def rounded(self, places: int = 3) -> "WeightVector":
        """
        Round a normalized vector for display. The rounding remainder goes to
        the largest weight, so the rounded values still sum to 1.0.
        """
        values = {name: round(self.weight(name), places) for name in COMPONENTS}
        largest = max(COMPONENTS, key=self.weight)
        values[largest] = round(values[largest] + 1.0 - sum(values.values()), places)
        return WeightVector.from_dict(values)

    def to_dict(self) -> dict[str, float]:
        return {name: self.weight(name) for name in COMPONENTS}

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "WeightVector":
        return cls(
            **{
                attribute: float(data.get(name, 0.0) or 0.0)
                for name, attribute in _ATTRIBUTE_BY_COMPONENT.items()
            }
        )


@dataclass(slots=True)
class ScoredMatch:
    """Scorer output for one pair, before persistence."""

    contact_id: str
    contact_name: str
    raw_score: float
    stars: int
    breakdown: ScoreBreakdown
    confidence: ConfidenceScores
    regime: WeightRegime
    reasons: list[str] = field(default_factory=list)
    name_match_type: str = "none"

    @property
    def justification(self) -> str:
        if self.reasons:
            return f"{self.contact_name}: {'; '.join(self.reasons)}"
        return f"{self.contact_name} is a potential match."


@dataclass(slots=True)
class MatchSuggestion:
    """A persisted match suggestion row."""

    conversation_id: str
    contact_id: str
    score: int
    raw_score: float
    score_breakdown: ScoreBreakdown
    confidence_scores: ConfidenceScores
    reasons: list[str] = field(default_factory=list)
    justification: str | None = None
    ai_explanation: str | None = None
    match_version: str = "v1.0"
    status: SuggestionStatus = SuggestionStatus.PENDING
    contact_name: str | None = None
    id: str | None = None

    @classmethod
    def from_scored(
        cls, conversation_id: str, scored: ScoredMatch, match_version: str
    ) -> "MatchSuggestion":
        return cls(
            conversation_id=conversation_id,
            contact_id=scored.contact_id,
            score=scored.stars,
            raw_score=scored.raw_score,
            score_breakdown=scored.breakdown,
            confidence_scores=scored.confidence,
            reasons=list(scored.reasons),
            justification=scored.justification,
            match_version=match_version,
            contact_name=scored.contact_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "contact_id": self.contact_id,
            "contact_name": self.contact_name,
            "score": self.score,
            "raw_score": round(self.raw_score, 4),
            "score_breakdown": self.score_breakdown.to_dict(),
            "confidence_scores": self.confidence_scores.to_dict(),
            "reasons": list(self.reasons),
            "justification": self.justification,
            "ai_explanation": self.ai_explanation,
            "match_version": self.match_version,
            "status": str(self.status),
        }
