"""
Match generation - scores a conversation against the owner's contacts and
persists the top suggestions.
"""

from dataclasses import dataclass, field

from intromatch.config import settings
from intromatch.features.matching.domain.models import (
    ContactProfile,
    ConversationSignals,
    MatchSuggestion,
    ScoredMatch,
)
from intromatch.features.matching.pipeline.scoring.service import ScoringService
from intromatch.features.matching.repository.matching_repository import MatchingRepository
from intromatch.features.matching.services.explanation_service import ExplanationService
from intromatch.infrastructure.batching import run_in_batches
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ConversationNotFoundError(Exception):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id
        self.recoverable = False


@dataclass(slots=True)
class GenerationResult:
    conversation_id: str
    suggestions: list[MatchSuggestion] = field(default_factory=list)
    scored_count: int = 0
    explained_count: int = 0
    explanation_errors: int = 0


class MatchGenerationService:
    MIN_STARS_FOR_EXPLANATION = 2
    EXPLAIN_CONCURRENCY = 5
    EXPLAIN_BATCH_DELAY_SECONDS = 0.2

    def __init__(
        self,
        repository: MatchingRepository,
        scoring_service: ScoringService | None = None,
        explanation_service: ExplanationService | None = None,
        max_suggestions: int | None = None,
        explain_top_n: int | None = None,
        match_version: str | None = None,
    ):
        self.repository = repository
        self.scoring_service = scoring_service or ScoringService()
        self.explanation_service = explanation_service
        self.max_suggestions = max_suggestions or settings.MATCH_MAX_SUGGESTIONS
        self.explain_top_n = (
            settings.MATCH_EXPLAIN_TOP_N if explain_top_n is None else explain_top_n
        )
        self.match_version = match_version or settings.MATCH_VERSION

    async def generate(self, conversation_id: str) -> GenerationResult:
        """
        Score, explain and persist suggestions for one conversation.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
            DatabaseError: If loading or persisting fails
        """
        loaded = await self.repository.load_signals(conversation_id)
        if loaded is None:
            raise ConversationNotFoundError(conversation_id)
        signals, owner_id = loaded

        result = GenerationResult(conversation_id=conversation_id)
        if signals.is_empty:
            logger.info("No entities for conversation, skipping", conversation_id=conversation_id)
            return result

        contacts = await self.repository.fetch_contacts(owner_id)
        if not contacts:
            logger.info("No contacts for owner, skipping", conversation_id=conversation_id)
            return result

        scored = self.scoring_service.score_contacts(signals, contacts)
        result.scored_count = len(contacts)
        top = scored[: self.max_suggestions]

        suggestions = [
            MatchSuggestion.from_scored(conversation_id, match, self.match_version) for match in top
        ]
        await self._attach_explanations(signals, contacts, top, suggestions, result)

        result.suggestions = await self.repository.upsert_suggestions(suggestions)
        logger.info(
            "Matches generated",
            conversation_id=conversation_id,
            contacts=len(contacts),
            kept=len(top),
            persisted=len(result.suggestions),
            explained=result.explained_count,
        )
        return result

    async def _attach_explanations(
        self,
        signals: ConversationSignals,
        contacts: list[ContactProfile],
        top: list[ScoredMatch],
        suggestions: list[MatchSuggestion],
        result: GenerationResult,
    ) -> None:
        if not self.explanation_service or not self.explanation_service.enabled:
            return

        by_id = {contact.id: contact for contact in contacts}
        eligible = [
            index
            for index, match in enumerate(top)
            if match.stars >= self.MIN_STARS_FOR_EXPLANATION
        ][: self.explain_top_n]
        if not eligible:
            return

        async def explain(index: int) -> str | None:
            match = top[index]
            return await self.explanation_service.explain(signals, by_id[match.contact_id], match)

        outcome = await run_in_batches(
            eligible,
            explain,
            concurrency=self.EXPLAIN_CONCURRENCY,
            delay_seconds=self.EXPLAIN_BATCH_DELAY_SECONDS,
            operation="ai_explanations",
        )
        for index, text in outcome.results.items():
            if text:
                suggestions[index].ai_explanation = text
                result.explained_count += 1
        result.explanation_errors = len(outcome.errors)
