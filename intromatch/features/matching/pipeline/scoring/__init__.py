"""
Match scoring package.

Per-component similarity helpers, the fuzzy name matcher, the default
weight regimes and the ScoringService that combines them.
"""

__all__ = ["names", "service", "similarity", "weights"]
