"""
Matching routes.

Endpoints to generate suggestions for a conversation and to read the
persisted, ranked suggestions back. Authentication is handled upstream.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from intromatch.db.helpers import DatabaseError
from intromatch.db.pool import DatabasePoolManager
from intromatch.features.matching.pipeline.generation.service import (
    ConversationNotFoundError,
    MatchGenerationService,
)
from intromatch.features.matching.repository.matching_repository import MatchingRepository
from intromatch.infrastructure.observability.logging import get_logger
from intromatch.routes.dependencies import get_db_pool

from .schemas import GenerateMatchesResponse, MatchSuggestionResponse, SuggestionListResponse

router = APIRouter(prefix="/matching", tags=["matching"])
logger = get_logger(__name__)


def get_generation_service(
    request: Request, pool: DatabasePoolManager = Depends(get_db_pool)
) -> MatchGenerationService:
    return MatchGenerationService(
        MatchingRepository(pool),
        explanation_service=getattr(request.app.state, "explanation_service", None),
    )


def get_matching_repository(pool: DatabasePoolManager = Depends(get_db_pool)) -> MatchingRepository:
    return MatchingRepository(pool)


@router.post(
    "/conversations/{conversation_id}/generate", response_model=GenerateMatchesResponse
)
async def generate_matches(
    conversation_id: str,
    service: MatchGenerationService = Depends(get_generation_service),
):
    """
    Score the conversation against the owner's contacts and persist suggestions.

    Raises:
        404: Conversation not found
        503: Database unavailable
    """
    try:
        result = await service.generate(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except DatabaseError as e:
        logger.error(
            "Match generation failed",
            conversation_id=conversation_id,
            operation=e.operation,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Match generation temporarily unavailable",
        ) from e

    return GenerateMatchesResponse(
        conversation_id=conversation_id,
        contacts_scored=result.scored_count,
        explained=result.explained_count,
        matches=[MatchSuggestionResponse.from_domain(s) for s in result.suggestions],
    )


@router.get(
    "/conversations/{conversation_id}/suggestions", response_model=SuggestionListResponse
)
async def list_suggestions(
    conversation_id: str,
    repository: MatchingRepository = Depends(get_matching_repository),
):
    """Persisted suggestions ordered by stars then raw score."""
    try:
        suggestions = await repository.fetch_suggestions(conversation_id)
    except DatabaseError as e:
        logger.error("Suggestion fetch failed", conversation_id=conversation_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Suggestions temporarily unavailable",
        ) from e

    return SuggestionListResponse(
        conversation_id=conversation_id,
        matches=[MatchSuggestionResponse.from_domain(s) for s in suggestions],
    )
