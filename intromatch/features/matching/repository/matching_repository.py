"""
Repository for conversation signals, contact profiles and match suggestions.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from intromatch.db.helpers import DatabaseError, fetch_all, fetch_one, with_db_retry
from intromatch.db.pool import DatabasePoolManager
from intromatch.features.matching.domain.models import (
    ConfidenceScores,
    ContactProfile,
    ConversationSignals,
    MatchSuggestion,
    ScoreBreakdown,
    SuggestionStatus,
    Thesis,
)
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ENTITY_FIELDS = {
    "sector": "sectors",
    "stage": "stages",
    "geo": "geos",
    "check_size": "check_sizes",
    "person_name": "mentioned_people",
}


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item]


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return value if isinstance(value, Mapping) else {}


def _optional_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_vector(value: Any) -> list[float] | None:
    """Read an embedding column stored as a float array or as pgvector text."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Unparseable embedding ignored", preview=value[:40])
            return None
    try:
        vector = [float(item) for item in value]
    except (TypeError, ValueError):
        return None
    return vector or None


def signals_from_rows(
    conversation_id: str, conversation: Mapping[str, Any], entities: Iterable[Mapping[str, Any]]
) -> ConversationSignals:
    signals = ConversationSignals(conversation_id=conversation_id)
    for entity in entities:
        attribute = ENTITY_FIELDS.get(entity.get("entity_type"))
        value = (entity.get("value") or "").strip()
        if attribute and value:
            getattr(signals, attribute).append(value)

    topics = _as_mapping(conversation.get("domains_and_topics"))
    signals.product_keywords = _string_list(topics.get("product_keywords"))
    signals.technology_keywords = _string_list(topics.get("technology_keywords"))
    signals.personal_interests = _string_list(topics.get("personal_interests"))

    goals = _as_mapping(conversation.get("goals_and_needs"))
    fundraising = _as_mapping(goals.get("fundraising"))
    signals.investor_types = _string_list(fundraising.get("investor_types"))

    target = _as_mapping(conversation.get("target_person"))
    if target.get("name"):
        signals.target_person = str(target["name"]).strip() or None

    signals.context_embedding = parse_vector(conversation.get("context_embedding"))
    return signals


def contact_from_row(row: Mapping[str, Any]) -> ContactProfile:
    theses = [
        Thesis(
            sectors=_string_list(thesis.get("sectors")),
            stages=_string_list(thesis.get("stages")),
            geos=_string_list(thesis.get("geos")),
        )
        for thesis in (row.get("theses") or [])
        if isinstance(thesis, Mapping)
    ]
    strength = row.get("relationship_strength")
    return ContactProfile(
        id=str(row["id"]),
        name=row.get("name") or "",
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        title=row.get("title"),
        company=row.get("company"),
        location=row.get("location"),
        bio=row.get("bio"),
        investor_notes=row.get("investor_notes"),
        theses=theses,
        contact_types=_string_list(row.get("contact_type")),
        is_investor=bool(row.get("is_investor")),
        relationship_strength=int(strength) if strength is not None else None,
        bio_embedding=parse_vector(row.get("bio_embedding")),
        thesis_embedding=parse_vector(row.get("thesis_embedding")),
        check_size_min=_optional_float(row.get("check_size_min")),
        check_size_max=_optional_float(row.get("check_size_max")),
        personal_interests=_string_list(row.get("personal_interests")),
    )


def suggestion_from_row(row: Mapping[str, Any]) -> MatchSuggestion:
    raw_score = row.get("raw_score")
    return MatchSuggestion(
        id=str(row["id"]) if row.get("id") is not None else None,
        conversation_id=str(row["conversation_id"]),
        contact_id=str(row["contact_id"]),
        contact_name=row.get("contact_name"),
        score=int(row.get("score") or 0),
        raw_score=float(raw_score) if raw_score is not None else 0.0,
        score_breakdown=ScoreBreakdown.from_dict(_as_mapping(row.get("score_breakdown"))),
        confidence_scores=ConfidenceScores.from_dict(_as_mapping(row.get("confidence_scores"))),
        reasons=_string_list(row.get("reasons")),
        justification=row.get("justification"),
        ai_explanation=row.get("ai_explanation"),
        match_version=row.get("match_version") or "v1.0",
        status=SuggestionStatus(row.get("status") or SuggestionStatus.PENDING),
    )


class MatchingRepository:
    """Reads matching inputs and persists suggestions."""

    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    @with_db_retry()
    async def fetch_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        return await fetch_one(
            self.pool,
            """
            SELECT id, owned_by_profile, title, target_person, goals_and_needs,
                   domains_and_topics, context_embedding
            FROM conversations
            WHERE id = %s
            """,
            (conversation_id,),
        )

    @with_db_retry()
    async def fetch_entities(self, conversation_id: str) -> list[dict[str, Any]]:
        return await fetch_all(
            self.pool,
            """
            SELECT entity_type, value
            FROM conversation_entities
            WHERE conversation_id = %s
            ORDER BY created_at
            """,
            (conversation_id,),
        )

    async def load_signals(self, conversation_id: str) -> tuple[ConversationSignals, str] | None:
        """
        Load extracted signals for a conversation.

        Returns:
            (signals, owner profile id), or None when the conversation does not exist
        """
        conversation = await self.fetch_conversation(conversation_id)
        if not conversation:
            return None
        entities = await self.fetch_entities(conversation_id)
        signals = signals_from_rows(conversation_id, conversation, entities)
        return signals, str(conversation["owned_by_profile"])

    @with_db_retry()
    async def fetch_contacts(self, owner_id: str) -> list[ContactProfile]:
        rows = await fetch_all(
            self.pool,
            """
            SELECT c.id, c.name, c.first_name, c.last_name, c.title, c.company,
                   c.location, c.bio, c.investor_notes, c.contact_type, c.is_investor,
                   c.relationship_strength, c.bio_embedding::text AS bio_embedding,
                   c.thesis_embedding::text AS thesis_embedding,
                   c.check_size_min, c.check_size_max, c.personal_interests,
                   COALESCE(
                       json_agg(
                           json_build_object(
                               'sectors', t.sectors, 'stages', t.stages, 'geos', t.geos
                           )
                       ) FILTER (WHERE t.id IS NOT NULL),
                       '[]'::json
                   ) AS theses
            FROM contacts c
            LEFT JOIN theses t ON t.contact_id = c.id
            WHERE c.owned_by_profile = %s
            GROUP BY c.id
            """,
            (owner_id,),
        )
        return [contact_from_row(row) for row in rows]

    @with_db_retry()
    async def upsert_suggestions(self, suggestions: list[MatchSuggestion]) -> list[MatchSuggestion]:
        """
        Insert or refresh suggestions keyed on (conversation_id, contact_id).

        Rows a user already acted on are left untouched and are not returned.
        """
        if not suggestions:
            return []

        query = """
            INSERT INTO match_suggestions (
                conversation_id, contact_id, score, raw_score, reasons, justification,
                ai_explanation, status, score_breakdown, confidence_scores, match_version
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'pending', %s, %s, %s)
            ON CONFLICT (conversation_id, contact_id) DO UPDATE
            SET score = EXCLUDED.score,
                raw_score = EXCLUDED.raw_score,
                reasons = EXCLUDED.reasons,
                justification = EXCLUDED.justification,
                ai_explanation = COALESCE(
                    EXCLUDED.ai_explanation, match_suggestions.ai_explanation
                ),
                score_breakdown = EXCLUDED.score_breakdown,
                confidence_scores = EXCLUDED.confidence_scores,
                match_version = EXCLUDED.match_version,
                updated_at = NOW()
            WHERE match_suggestions.status = 'pending'
            RETURNING id, conversation_id, contact_id, score, raw_score, reasons,
                      justification, ai_explanation, status, score_breakdown,
                      confidence_scores, match_version
        """

        saved: list[MatchSuggestion] = []
        try:
            async with self.pool.transaction() as conn:
                async with conn.cursor() as cur:
                    for suggestion in suggestions:
                        await cur.execute(query, self._upsert_params(suggestion))
                        row = await cur.fetchone()
                        if row:
                            stored = suggestion_from_row(row)
                            stored.contact_name = suggestion.contact_name
                            saved.append(stored)

        except psycopg.Error as e:
            logger.error(
                "Match suggestion upsert failed",
                conversation_id=suggestions[0].conversation_id,
                error=str(e),
            )
            raise DatabaseError(f"Upsert failed: {e}", operation="upsert_suggestions") from e

        skipped = len(suggestions) - len(saved)
        logger.info(
            "Match suggestions upserted",
            conversation_id=suggestions[0].conversation_id,
            saved=len(saved),
            skipped_user_acted=skipped,
        )
        return saved

    @staticmethod
    def _upsert_params(suggestion: MatchSuggestion) -> tuple:
        return (
            suggestion.conversation_id,
            suggestion.contact_id,
            suggestion.score,
            suggestion.raw_score,
            Jsonb(list(suggestion.reasons)),
            suggestion.justification,
            suggestion.ai_explanation,
            Jsonb(suggestion.score_breakdown.to_dict()),
            Jsonb(suggestion.confidence_scores.to_dict()),
            suggestion.match_version,
        )

    @with_db_retry()
    async def fetch_suggestions(self, conversation_id: str) -> list[MatchSuggestion]:
        rows = await fetch_all(
            self.pool,
            """
            SELECT s.id, s.conversation_id, s.contact_id, c.name AS contact_name, s.score,
                   s.raw_score, s.reasons, s.justification, s.ai_explanation, s.status,
                   s.score_breakdown, s.confidence_scores, s.match_version
            FROM match_suggestions s
            JOIN contacts c ON c.id = s.contact_id
            WHERE s.conversation_id = %s
            ORDER BY s.score DESC, s.raw_score DESC NULLS LAST
            """,
            (conversation_id,),
        )
        return [suggestion_from_row(row) for row in rows]
