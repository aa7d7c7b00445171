"""
Error taxonomy for provider calls.

Provider failures are classified exactly once, at the gateway boundary, into a
RedesignServiceError. Everything downstream (orchestrator, routers, remote
client) reads the kind and retry hint without re-inspecting the message.
"""
import asyncio
import math
import re
from enum import Enum
from typing import Any, Iterable, Optional

import aiohttp


class ErrorKind(str, Enum):
    """Classification of a failed provider or API call"""

    NOT_CONFIGURED = "not_configured"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_CONFIGURED: 503,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UNKNOWN: 500,
}

_UNAUTHORIZED_PATTERN = re.compile(r"401|unauthori|invalid.*key|api key not valid|authentication|permission denied", re.IGNORECASE)
_RATE_LIMIT_PATTERN = re.compile(r"429|quota|rate limit|too many requests|exceed|resource_exhausted", re.IGNORECASE)
_UNAVAILABLE_PATTERN = re.compile(
    r"timeout|timed out|ECONNREFUSED|ENOTFOUND|ECONNRESET|ETIMEDOUT|connection (refused|reset|error)"
    r"|unavailable|name or service not known",
    re.IGNORECASE,
)
_RETRY_IN_PATTERN = re.compile(r"retry in\s*([0-9]+(?:\.[0-9]+)?)s", re.IGNORECASE)
_SECONDS_PATTERN = re.compile(r"([0-9]+(?:\.[0-9]+)?)s")


class RedesignServiceError(Exception):
    """A classified failure carrying an optional retry-after hint (seconds)"""

    def __init__(self, kind: ErrorKind, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.retry_after_seconds = retry_after_seconds

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_payload(self) -> dict:
        """JSON body used by the proxy endpoints"""
        payload = {"error": self.message}
        if self.retry_after_seconds is not None:
            payload["retryAfterSeconds"] = self.retry_after_seconds
        return payload

    def __repr__(self) -> str:
        return f"RedesignServiceError(kind={self.kind.value!r}, message={self.message!r}, retry_after_seconds={self.retry_after_seconds!r})"


def not_configured_error(provider: str = "provider") -> RedesignServiceError:
    return RedesignServiceError(
        ErrorKind.NOT_CONFIGURED,
        f"Server not configured with a {provider} API key. Please set it in .env.",
    )


def invalid_request_error(message: str) -> RedesignServiceError:
    return RedesignServiceError(ErrorKind.INVALID_REQUEST, message)


def _ceil_seconds(value: str) -> Optional[int]:
    try:
        return math.ceil(float(value))
    except ValueError:
        return None


def parse_retry_after(message: str, details: Optional[Iterable[Any]] = None) -> Optional[int]:
    """
    Extract a retry-after hint in whole seconds (rounded up).

    A structured RetryInfo detail (``{"@type": "...RetryInfo", "retryDelay": "12s"}``)
    wins over the textual ``retry in 12s`` pattern.
    """
    if details:
        for detail in details:
            if not isinstance(detail, dict):
                continue
            if "RetryInfo" in str(detail.get("@type", "")) and detail.get("retryDelay"):
                match = _SECONDS_PATTERN.search(str(detail["retryDelay"]))
                if match:
                    seconds = _ceil_seconds(match.group(1))
                    if seconds is not None:
                        return seconds

    match = _RETRY_IN_PATTERN.search(message or "")
    if match:
        return _ceil_seconds(match.group(1))
    return None


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def _details_of(exc: BaseException) -> Optional[list]:
    """Pull RetryInfo-style details out of a provider error, if it carries any"""
    details = getattr(exc, "details", None)
    if isinstance(details, list):
        return details
    if isinstance(details, dict):
        error = details.get("error", details)
        inner = error.get("details") if isinstance(error, dict) else None
        if isinstance(inner, list):
            return inner
    return None


def _kind_from_status(status: Optional[int]) -> Optional[ErrorKind]:
    if status in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (502, 503, 504):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return None


def _kind_from_message(message: str) -> ErrorKind:
    if _UNAUTHORIZED_PATTERN.search(message):
        return ErrorKind.UNAUTHORIZED
    if _RATE_LIMIT_PATTERN.search(message):
        return ErrorKind.RATE_LIMITED
    if _UNAVAILABLE_PATTERN.search(message):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return ErrorKind.UNKNOWN


def classify_provider_error(exc: BaseException) -> RedesignServiceError:
    """Classify a raw provider/transport exception into a RedesignServiceError"""
    if isinstance(exc, RedesignServiceError):
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, (asyncio.TimeoutError, ConnectionError, aiohttp.ClientConnectionError)):
        kind = ErrorKind.UPSTREAM_UNAVAILABLE
    else:
        kind = _kind_from_status(_status_of(exc)) or _kind_from_message(message)

    retry_after = None
    if kind == ErrorKind.RATE_LIMITED:
        retry_after = parse_retry_after(message, _details_of(exc))

    return RedesignServiceError(kind, message, retry_after_seconds=retry_after)


def kind_from_http_status(status: int) -> ErrorKind:
    """Recover the error kind from a proxy endpoint status code"""
    for kind, kind_status in HTTP_STATUS_BY_KIND.items():
        if kind_status == status:
            return kind
    if status == 403:
        return ErrorKind.UNAUTHORIZED
    if status == 422:
        return ErrorKind.INVALID_REQUEST
    if status == 504:
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return ErrorKind.UNKNOWN
