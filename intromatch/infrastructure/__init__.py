"""
Cross-cutting infrastructure: logging and batch execution.
"""
