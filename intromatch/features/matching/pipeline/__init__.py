"""
Pipeline components for matching.

Scoring turns a (conversation, contact) pair into a breakdown, raw score
and stars; confidence describes the evidence behind it; generation runs
both over a conversation and persists the result.
"""

__all__ = ["scoring", "confidence", "generation"]
