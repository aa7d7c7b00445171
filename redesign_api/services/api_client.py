"""
HTTP client for the provider proxy endpoints.

RedesignAPIClient implements both gateway contracts over HTTP, so a
RedesignSession can run in a different process from the API server that holds
the provider credentials.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp

from redesign_api.core.config import settings
from redesign_api.core.errors import RedesignServiceError, classify_provider_error, kind_from_http_status, parse_retry_after
from redesign_api.utils.images import InlineImage

logger = logging.getLogger(__name__)


def error_from_response(status: int, reason: str, body_text: str, headers: Optional[Mapping[str, str]] = None) -> RedesignServiceError:
    """
    Rebuild a RedesignServiceError from a failed proxy response.

    The retry hint comes from the JSON ``retryAfterSeconds`` field, else the
    ``Retry-After`` header, else a ``retry in Ns`` pattern in a non-JSON body.
    """
    message = body_text
    retry_after: Optional[int] = None

    try:
        parsed = json.loads(body_text)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict):
        message = parsed.get("error") or json.dumps(parsed)
        if parsed.get("retryAfterSeconds") is not None:
            try:
                retry_after = int(parsed["retryAfterSeconds"])
            except (TypeError, ValueError):
                retry_after = None

    if retry_after is None and headers:
        header_value = headers.get("Retry-After")
        if header_value and header_value.strip().isdigit():
            retry_after = int(header_value.strip())

    if retry_after is None and not isinstance(parsed, dict) and body_text:
        retry_after = parse_retry_after(body_text)

    return RedesignServiceError(
        kind_from_http_status(status),
        f"{status} {reason} - {message}".strip(),
        retry_after_seconds=retry_after,
    )


class RedesignAPIClient:
    """aiohttp client implementing GenerationGateway and ConversationGateway"""

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.provider_timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self.session

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        try:
            async with session.post(url, json=payload) as response:
                body_text = await response.text()
                if response.status >= 400:
                    error = error_from_response(response.status, response.reason or "", body_text, response.headers)
                    logger.warning(f"POST {path} failed ({error.kind.value}): {error.message}")
                    raise error
                return json.loads(body_text)
        except RedesignServiceError:
            raise
        except Exception as e:
            raise classify_provider_error(e)

    async def request_redesign(self, image: InlineImage, prompt: str, is_refinement: bool = False) -> InlineImage:
        data = await self._post(
            "/api/generate-image",
            {"imageBase64": image.to_data_url(), "prompt": prompt, "isRefinement": is_refinement},
        )
        return InlineImage.from_data_url(data["image"])

    async def send_turn(self, style: str, message: str) -> str:
        data = await self._post("/api/chat", {"style": style, "message": message})
        return data["text"]

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
