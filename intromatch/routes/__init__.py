"""
Service-level routes (health and readiness).
"""
