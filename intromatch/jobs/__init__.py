"""Batch tools: evaluation, weight tuning and feedback label export."""
