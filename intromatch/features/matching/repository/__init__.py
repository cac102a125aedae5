"""
Repository layer for the matching feature.
"""

from .matching_repository import MatchingRepository

__all__ = ["MatchingRepository"]
