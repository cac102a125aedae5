"""
Introduction matching service.

Ranks relationship-graph contacts against a conversation's extracted
context and keeps the ranking calibrated with offline evaluation and
weight tuning.
"""
