"""
ChatGPT service for the style-scoped design assistant (alternative chat provider)
"""
import logging
import time
from typing import Optional

import openai

from redesign_api.core.config import settings
from redesign_api.core.errors import classify_provider_error, invalid_request_error, not_configured_error
from redesign_api.services.prompts import EMPTY_CHAT_REPLY, build_chat_system_instruction

logger = logging.getLogger(__name__)


class ChatGPTService:
    """Service for interacting with ChatGPT as the design assistant"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = settings.openai_api_key if api_key is None else api_key
        self.model = settings.openai_model
        self.client = None

        if self.api_key:
            # Retries are left to the caller; provider errors surface immediately
            self.client = openai.AsyncOpenAI(
                api_key=self.api_key,
                timeout=settings.provider_timeout_seconds,
                max_retries=0,
            )
            logger.info(f"ChatGPT service initialized with model {self.model}")
        else:
            logger.warning("OpenAI API key not configured - chat will return 503 when this provider is selected")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def ensure_configured(self):
        if not self.configured:
            raise not_configured_error("OpenAI")

    async def send_chat_message(self, style: str, message: str) -> str:
        """Send one user message to the style-scoped design assistant and return its raw text"""
        self.ensure_configured()
        if not message or not message.strip():
            raise invalid_request_error("message is required")

        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": build_chat_system_instruction(style)},
                    {"role": "user", "content": message},
                ],
                max_tokens=settings.openai_max_tokens,
                temperature=settings.openai_temperature,
            )
        except Exception as e:
            error = classify_provider_error(e)
            logger.error(f"OpenAI chat request failed ({error.kind.value}): {error.message}")
            raise error

        logger.info(f"OpenAI chat request successful - Time: {time.time() - start_time:.2f}s")

        content = None
        if response.choices:
            content = response.choices[0].message.content
        return content or EMPTY_CHAT_REPLY


# Global service instance
chatgpt_service = ChatGPTService()
