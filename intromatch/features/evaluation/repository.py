"""
Read-only access to persisted suggestions, feedback and name lookups.

Nothing in this module writes to the match store.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from intromatch.db.helpers import fetch_all, with_db_retry
from intromatch.db.pool import DatabasePoolManager
from intromatch.features.matching.domain.models import ConfidenceScores, ScoreBreakdown
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class StoredSuggestion:
    """Snapshot of one persisted suggestion as used for offline evaluation."""

    conversation_id: str
    contact_id: str
    score: int
    raw_score: float
    breakdown: ScoreBreakdown
    confidence: ConfidenceScores
    contact_name: str | None = None
    status: str = "pending"
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StoredSuggestion":
        """
        Validate a row; a missing or non-object breakdown or confidence map
        is a warning and becomes an empty map.
        """
        warnings = []
        maps = {}
        for column in ("score_breakdown", "confidence_scores"):
            value = row.get(column)
            if not isinstance(value, Mapping):
                warnings.append(f"{column} missing" if value is None else f"{column} not an object")
                value = {}
            maps[column] = value

        if warnings:
            logger.warning(
                "Suggestion snapshot incomplete",
                conversation_id=str(row.get("conversation_id")),
                contact_id=str(row.get("contact_id")),
                issues=warnings,
            )

        raw_score = row.get("raw_score")
        return cls(
            conversation_id=str(row["conversation_id"]),
            contact_id=str(row["contact_id"]),
            score=int(row.get("score") or 0),
            raw_score=float(raw_score) if raw_score is not None else 0.0,
            breakdown=ScoreBreakdown.from_dict(maps["score_breakdown"]),
            confidence=ConfidenceScores.from_dict(maps["confidence_scores"]),
            contact_name=row.get("contact_name"),
            status=row.get("status") or "pending",
            warnings=warnings,
        )


class EvaluationRepository:
    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    @with_db_retry()
    async def resolve_conversation_titles(self, titles: Sequence[str]) -> dict[str, str]:
        if not titles:
            return {}
        rows = await fetch_all(
            self.pool,
            "SELECT id, title FROM conversations WHERE title = ANY(%s) ORDER BY created_at",
            (list(titles),),
        )
        return self._first_by(rows, "title")

    @with_db_retry()
    async def resolve_contact_names(self, names: Sequence[str]) -> dict[str, str]:
        if not names:
            return {}
        rows = await fetch_all(
            self.pool,
            "SELECT id, name FROM contacts WHERE name = ANY(%s) ORDER BY created_at",
            (list(names),),
        )
        return self._first_by(rows, "name")

    @staticmethod
    def _first_by(rows: list[dict[str, Any]], column: str) -> dict[str, str]:
        mapping: dict[str, str] = {}
        for row in rows:
            key = row[column]
            if key in mapping:
                logger.warning("Ambiguous name, using the oldest row", column=column, value=key)
                continue
            mapping[key] = str(row["id"])
        return mapping

    @with_db_retry()
    async def fetch_conversation_titles(self, conversation_ids: Sequence[str]) -> dict[str, str]:
        if not conversation_ids:
            return {}
        rows = await fetch_all(
            self.pool,
            "SELECT id, title FROM conversations WHERE id = ANY(%s)",
            (list(conversation_ids),),
        )
        return {str(row["id"]): row["title"] or str(row["id"]) for row in rows}

    @with_db_retry()
    async def fetch_contact_names(self, contact_ids: Sequence[str]) -> dict[str, str]:
        if not contact_ids:
            return {}
        rows = await fetch_all(
            self.pool,
            "SELECT id, name FROM contacts WHERE id = ANY(%s)",
            (list(contact_ids),),
        )
        return {str(row["id"]): row["name"] for row in rows}

    @with_db_retry()
    async def fetch_suggestions(self, conversation_id: str) -> list[StoredSuggestion]:
        """Every persisted suggestion for a conversation, best raw score first."""
        rows = await fetch_all(
            self.pool,
            """
            SELECT s.conversation_id, s.contact_id, c.name AS contact_name, s.score,
                   s.raw_score, s.score_breakdown, s.confidence_scores, s.status
            FROM match_suggestions s
            LEFT JOIN contacts c ON c.id = s.contact_id
            WHERE s.conversation_id = %s
            ORDER BY s.raw_score DESC NULLS LAST, s.score DESC, s.contact_id
            """,
            (conversation_id,),
        )
        return [StoredSuggestion.from_row(row) for row in rows]

    @with_db_retry()
    async def fetch_feedback_rows(self) -> list[dict[str, Any]]:
        return await fetch_all(
            self.pool,
            """
            SELECT f.feedback, s.conversation_id, s.contact_id
            FROM match_feedback f
            JOIN match_suggestions s ON s.id = f.suggestion_id
            ORDER BY f.created_at
            """,
        )

    @with_db_retry()
    async def fetch_status_rows(self) -> list[dict[str, Any]]:
        return await fetch_all(
            self.pool,
            """
            SELECT conversation_id, contact_id, status
            FROM match_suggestions
            WHERE status IN ('intro_made', 'dismissed')
            """,
        )
