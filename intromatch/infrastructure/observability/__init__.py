"""
Observability helpers.
"""

from .logging import bind_job_context, get_logger, log_request, setup_logging

__all__ = ["bind_job_context", "get_logger", "log_request", "setup_logging"]
