"""
Match scoring service - scores (conversation, contact) pairs.

Each component lands in [0, 1]. Missing or malformed inputs degrade a
single component to 0 (or to absent for the embedding) and never abort
the pair.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping

from intromatch.features.matching.domain.models import (
    ContactProfile,
    ConversationSignals,
    ScoreBreakdown,
    ScoredMatch,
    WeightRegime,
    WeightVector,
)
from intromatch.features.matching.pipeline.confidence.service import ConfidenceEstimator
from intromatch.infrastructure.observability.logging import get_logger

from .names import NameMatch, best_name_match
from .similarity import (
    check_size_fit,
    cosine_similarity,
    jaccard_similarity,
    lowered_set,
    matches_any,
    mutually_contains,
    parse_check_size,
)
from .weights import DEFAULT_WEIGHTS, score_to_stars, select_regime, weighted_score

logger = get_logger(__name__)


class ScoringService:
    ROLE_MATCH_SCORE = 0.8
    LOCATION_GEO_SCORE = 1.0
    THESIS_GEO_SCORE = 0.5
    DEFAULT_RELATIONSHIP_STRENGTH = 50
    EXACT_NAME_THRESHOLD = 0.95
    REASON_TAG_OVERLAP_MIN = 0.1
    REASON_CHECK_SIZE_MIN = 0.5
    INVESTMENT_TERMS = (
        "venture",
        "capital",
        "seed",
        "series a",
        "series b",
        "pre-seed",
        "biotech",
        "fintech",
        "healthtech",
        "saas",
        "ai",
        "ml",
        "deep tech",
        "climate",
        "enterprise",
        "b2b",
        "b2c",
        "consumer",
        "healthcare",
        "life sciences",
    )

    def __init__(
        self,
        weights: Mapping[WeightRegime, WeightVector] | None = None,
        confidence_estimator: ConfidenceEstimator | None = None,
    ):
        """
        Raises:
            ValueError: If any regime vector does not sum to 1.0
        """
        self.weights = dict(DEFAULT_WEIGHTS)
        if weights:
            self.weights.update(weights)
        for regime, vector in self.weights.items():
            if not vector.is_normalized():
                raise ValueError(
                    f"Weights for {regime} sum to {vector.total():.6f}, expected 1.0"
                )
        self.confidence_estimator = confidence_estimator or ConfidenceEstimator()

    def score_contacts(
        self, signals: ConversationSignals, contacts: Iterable[ContactProfile]
    ) -> list[ScoredMatch]:
        """
        Score every contact and keep those with at least one star.

        Returns:
            Matches sorted by stars then raw score, both descending
        """
        matches = [self.score_pair(signals, contact) for contact in contacts]
        kept = [match for match in matches if match.stars > 0]
        kept.sort(key=lambda m: (m.stars, m.raw_score), reverse=True)

        logger.info(
            "Contacts scored",
            conversation_id=signals.conversation_id,
            scored=len(matches),
            kept=len(kept),
        )
        return kept

    def score_pair(self, signals: ConversationSignals, contact: ContactProfile) -> ScoredMatch:
        breakdown, name_match = self.compute_breakdown(signals, contact)
        regime = select_regime(breakdown)
        weights = self.weights[regime]
        raw_score = weighted_score(breakdown, weights)

        confidence = self.confidence_estimator.estimate(
            signals, contact, breakdown, weights, name_matched=name_match.matched
        )
        return ScoredMatch(
            contact_id=contact.id,
            contact_name=contact.name,
            raw_score=raw_score,
            stars=score_to_stars(raw_score),
            breakdown=breakdown,
            confidence=confidence,
            regime=regime,
            reasons=self._reasons(signals, contact, breakdown, name_match),
            name_match_type=name_match.match_type,
        )

    def compute_breakdown(
        self, signals: ConversationSignals, contact: ContactProfile
    ) -> tuple[ScoreBreakdown, NameMatch]:
        name_match = self._safe("nameMatch", self._name_match, signals, contact, NameMatch.none())
        breakdown = ScoreBreakdown(
            embedding=self._safe("embedding", self._embedding, signals, contact, None),
            semantic=self._safe("semantic", self._semantic, signals, contact, 0.0),
            tag_overlap=self._safe("tagOverlap", self._tag_overlap, signals, contact, 0.0),
            role_match=self._safe("roleMatch", self._role_match, signals, contact, 0.0),
            geo_match=self._safe("geoMatch", self._geo_match, signals, contact, 0.0),
            relationship=self._safe("relationship", self._relationship, signals, contact, 0.0),
            personal_affinity=self._safe(
                "personalAffinity", self._personal_affinity, signals, contact, 0.0
            ),
            check_size=self._safe("checkSize", self._check_size, signals, contact, 0.0),
            name_match=name_match.score if name_match.matched else 0.0,
        )
        return breakdown, name_match

    def _safe(self, component: str, func: Callable, signals, contact, fallback):
        try:
            value = func(signals, contact)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "Component scoring failed, using fallback",
                component=component,
                contact_id=contact.id,
                error=str(e),
            )
            return fallback
        if isinstance(value, float):
            return 0.0 if math.isnan(value) else min(max(value, 0.0), 1.0)
        return value

    def _contact_text(self, contact: ContactProfile) -> str:
        parts = [contact.bio, contact.title, contact.investor_notes, contact.company]
        return " ".join(part for part in parts if part).lower()

    def contact_tags(self, signals: ConversationSignals, contact: ContactProfile) -> set[str]:
        """
        Contact tags compared against the conversation tags.

        Contact-type labels and the investor pseudo-tag only join the set
        when the conversation asks for investors.
        """
        tags = lowered_set([*contact.thesis_sectors, *contact.thesis_stages, *contact.thesis_geos])
        if signals.investor_types:
            tags |= lowered_set(contact.contact_types)
            if contact.is_investor:
                tags.add("investor")

        profile_text = " ".join(
            part for part in (contact.bio, contact.title, contact.investor_notes) if part
        ).lower()
        tags.update(term for term in self.INVESTMENT_TERMS if term in profile_text)
        return tags

    def _embedding(self, signals: ConversationSignals, contact: ContactProfile) -> float | None:
        context = signals.context_embedding
        if not context:
            return None

        similarities = [
            cosine_similarity(context, candidate)
            for candidate in (contact.bio_embedding, contact.thesis_embedding)
            if candidate and len(candidate) == len(context)
        ]
        if not similarities:
            return None
        return min(max(max(similarities), 0.0), 1.0)

    def _semantic(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        terms = lowered_set(signals.tags)
        if not terms:
            return 0.0
        text = self._contact_text(contact)
        if not text:
            return 0.0
        hits = sum(1 for term in terms if term in text)
        return min(hits / len(terms), 1.0)

    def _tag_overlap(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        return jaccard_similarity(signals.tags, self.contact_tags(signals, contact))

    def _matched_role(self, signals: ConversationSignals, contact: ContactProfile) -> str | None:
        for investor_type in signals.investor_types:
            for contact_type in contact.contact_types:
                if not investor_type or not contact_type:
                    continue
                if mutually_contains(investor_type, contact_type):
                    return contact_type
        return None

    def _role_match(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        if not signals.investor_types:
            return 0.0
        return self.ROLE_MATCH_SCORE if self._matched_role(signals, contact) else 0.0

    def _geo_match(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        if not signals.geos:
            return 0.0
        if contact.location and any(matches_any(geo, [contact.location]) for geo in signals.geos):
            return self.LOCATION_GEO_SCORE
        if any(matches_any(geo, contact.thesis_geos) for geo in signals.geos):
            return self.THESIS_GEO_SCORE
        return 0.0

    def _relationship(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        strength = contact.relationship_strength
        if strength is None:
            strength = self.DEFAULT_RELATIONSHIP_STRENGTH
        return float(strength) / 100

    def _shared_interests(
        self, signals: ConversationSignals, contact: ContactProfile
    ) -> list[str]:
        return [
            interest
            for interest in signals.personal_interests
            if interest and matches_any(interest, contact.personal_interests)
        ]

    def _personal_affinity(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        interests = [interest for interest in signals.personal_interests if interest]
        if not interests or not contact.personal_interests:
            return 0.0
        return len(self._shared_interests(signals, contact)) / len(interests)

    def _check_size(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        parsed = [
            amount
            for amount in (parse_check_size(phrase) for phrase in signals.check_sizes if phrase)
            if amount is not None
        ]
        if not parsed:
            return 0.0
        return check_size_fit(
            min(parsed), max(parsed), contact.check_size_min, contact.check_size_max
        )

    def _name_match(self, signals: ConversationSignals, contact: ContactProfile) -> NameMatch:
        candidates = [name for name in (contact.name, contact.full_name) if name]
        if not signals.person_names or not candidates:
            return NameMatch.none()
        return best_name_match(signals.person_names, candidates)

    def _reasons(
        self,
        signals: ConversationSignals,
        contact: ContactProfile,
        breakdown: ScoreBreakdown,
        name_match: NameMatch,
    ) -> list[str]:
        reasons: list[str] = []

        if name_match.matched:
            if name_match.score >= self.EXACT_NAME_THRESHOLD:
                reasons.append(f'Name mentioned: "{contact.name}"')
            else:
                reasons.append(f'Similar name: "{contact.name}" ({round(name_match.score * 100)}%)')

        if breakdown.tag_overlap > self.REASON_TAG_OVERLAP_MIN:
            contact_tags = self.contact_tags(signals, contact)
            matched = [
                tag
                for tag in dict.fromkeys(signals.tags)
                if any(tag.lower() in contact_tag for contact_tag in contact_tags)
            ]
            if matched:
                reasons.append(f"Matches: {', '.join(matched[:3])}")

        if breakdown.role_match > 0:
            role = self._matched_role(signals, contact)
            if role:
                reasons.append(f"{role} investor")

        if breakdown.geo_match >= self.LOCATION_GEO_SCORE and contact.location:
            reasons.append(f"Location: {contact.location}")

        if breakdown.personal_affinity > 0:
            shared = self._shared_interests(signals, contact)
            reasons.append(f"Shared interests: {', '.join(shared[:3])}")

        if breakdown.check_size >= self.REASON_CHECK_SIZE_MIN:
            reasons.append("Check size fit")

        return reasons
