"""
Confidence estimation for scored matches.

Confidence describes how much evidence backed each component, not how
high the component scored: a 0 can be well supported ("checked, no
overlap") or unsupported ("nothing to check").
"""

from intromatch.features.matching.domain.models import (
    COMPONENTS,
    ConfidenceScores,
    ContactProfile,
    ConversationSignals,
    ScoreBreakdown,
    WeightVector,
)
from intromatch.features.matching.pipeline.scoring.similarity import (
    lowered_set,
    parse_check_size,
)


class ConfidenceEstimator:
    NO_SIGNAL = 0.2
    ONE_SIDED = 0.3
    NAME_MATCH_BONUS = 0.2
    RICH_BIO_LENGTH = 50
    RICH_TAG_COUNT = 2
    DEFAULT_RELATIONSHIP_STRENGTH = 50

    def estimate(
        self,
        signals: ConversationSignals,
        contact: ContactProfile,
        breakdown: ScoreBreakdown,
        weights: WeightVector,
        name_matched: bool = False,
    ) -> ConfidenceScores:
        scores = ConfidenceScores(
            embedding=self._embedding(breakdown),
            semantic=self._semantic(signals, contact),
            tag_overlap=self._tag_overlap(signals, contact),
            role_match=self._role_match(signals, contact),
            geo_match=self._geo_match(signals, contact),
            relationship=self._relationship(contact),
            personal_affinity=self._personal_affinity(signals, contact),
            check_size=self._check_size(signals, contact),
        )
        scores.overall = self._overall(scores, weights, name_matched)
        return scores

    def _overall(
        self, scores: ConfidenceScores, weights: WeightVector, name_matched: bool
    ) -> float:
        total_weight = weights.total()
        if total_weight <= 0:
            overall = sum(scores.component(name) for name in COMPONENTS) / len(COMPONENTS)
        else:
            overall = (
                sum(weights.weight(name) * scores.component(name) for name in COMPONENTS)
                / total_weight
            )
        if name_matched:
            overall += self.NAME_MATCH_BONUS
        return min(max(overall, 0.0), 1.0)

    def _embedding(self, breakdown: ScoreBreakdown) -> float:
        return 0.85 if breakdown.has_embedding else self.NO_SIGNAL

    def _semantic(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        terms = lowered_set(signals.tags)
        has_text = any((contact.bio, contact.title, contact.investor_notes, contact.company))
        if not terms or not has_text:
            return self.NO_SIGNAL
        richness = 0.8 if len(contact.bio or "") > self.RICH_BIO_LENGTH else 0.6
        term_quality = 1.0 if len(terms) > self.RICH_TAG_COUNT else 0.75
        return richness * term_quality

    def _tag_overlap(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        conversation_tags = lowered_set(signals.tags)
        has_contact_tags = bool(contact.theses or contact.contact_types or contact.bio)
        if not conversation_tags and not has_contact_tags:
            return self.NO_SIGNAL
        if not conversation_tags or not has_contact_tags:
            return self.ONE_SIDED
        if len(conversation_tags) >= self.RICH_TAG_COUNT and contact.theses:
            return 0.9
        return 0.6

    def _role_match(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        if not signals.investor_types:
            return self.NO_SIGNAL
        if not contact.contact_types:
            return self.ONE_SIDED
        return 0.9

    def _geo_match(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        if not signals.geos:
            return self.NO_SIGNAL
        if not contact.location and not contact.thesis_geos:
            return self.ONE_SIDED
        if contact.location and len(contact.location.split(",")) > 1:
            return 0.8
        return 0.6

    def _relationship(self, contact: ContactProfile) -> float:
        strength = contact.relationship_strength
        if strength is not None and strength != self.DEFAULT_RELATIONSHIP_STRENGTH:
            return 0.9
        return 0.4

    def _personal_affinity(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        if not any(signals.personal_interests):
            return self.NO_SIGNAL
        if not any(contact.personal_interests):
            return self.ONE_SIDED
        return 0.8

    def _check_size(self, signals: ConversationSignals, contact: ContactProfile) -> float:
        parsed = [parse_check_size(phrase) for phrase in signals.check_sizes if phrase]
        if not any(amount is not None for amount in parsed):
            return self.NO_SIGNAL
        if contact.check_size_min is None and contact.check_size_max is None:
            return self.ONE_SIDED
        return 0.85
