"""
Middleware package for the API.
"""
from redesign_api.middleware.logging_middleware import RequestLoggingMiddleware, extract_session_id

__all__ = ["RequestLoggingMiddleware", "extract_session_id"]
