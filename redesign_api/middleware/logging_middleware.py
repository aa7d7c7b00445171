"""
Request logging middleware.

Every request gets a short request ID (or keeps the caller's X-Request-ID).
It is bound into structlog's context variables together with the redesign
session ID of /sessions/{id} URLs, so each log line emitted while handling the
request carries both.
"""
import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SESSION_PATH_MARKER = "/sessions/"


def extract_session_id(path: str) -> str:
    """Session ID from a .../sessions/{id}/... path, or an empty string"""
    if SESSION_PATH_MARKER not in path:
        return ""
    return path.split(SESSION_PATH_MARKER, 1)[1].split("/")[0]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context, log the outcome and timing of each request, echo the request ID"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        session_id = extract_session_id(path)
        if session_id:
            structlog.contextvars.bind_contextvars(session_id=session_id)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.time() - start_time) * 1000
            logger.exception(f"{request.method} {path} raised after {duration_ms:.0f}ms")
            raise

        duration_ms = (time.time() - start_time) * 1000
        level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            level,
            f"{request.method} {path} -> {response.status_code} ({duration_ms:.0f}ms)",
            extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 1)},
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
