"""
Service layer for the matching feature.
"""

from .explanation_service import ExplanationError, ExplanationService

__all__ = ["ExplanationError", "ExplanationService"]
