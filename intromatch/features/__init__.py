"""
Feature slices: matching (live scoring), evaluation and tuning (offline).
"""
