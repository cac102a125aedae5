"""
Match generation package.
"""

from .service import ConversationNotFoundError, GenerationResult, MatchGenerationService

__all__ = ["ConversationNotFoundError", "GenerationResult", "MatchGenerationService"]
