"""
Confidence estimation for scored matches.
"""

__all__ = ["service"]
