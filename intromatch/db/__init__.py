"""
Database access: pool lifecycle and query helpers.
"""
