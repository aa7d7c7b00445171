"""
Google AI Studio service for room redesign image generation and design chat
"""
import asyncio
import base64
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from redesign_api.core.config import settings
from redesign_api.core.errors import (
    ErrorKind,
    RedesignServiceError,
    classify_provider_error,
    invalid_request_error,
    not_configured_error,
)
from redesign_api.services.prompts import EMPTY_CHAT_REPLY, build_chat_system_instruction, build_redesign_prompt
from redesign_api.utils.images import InlineImage

logger = logging.getLogger(__name__)


class GoogleAIStudioService:
    """Service for Google AI Studio integration"""

    def __init__(self, api_key: Optional[str] = None):
        """Initialize Google AI Studio service"""
        self.api_key = settings.google_ai_api_key if api_key is None else api_key
        self.image_model = settings.google_image_model
        self.chat_model = settings.google_chat_model
        self.usage_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_processing_time": 0.0,
            "last_reset": datetime.now(),
        }

        if self.api_key:
            self.genai_client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(settings.provider_timeout_seconds * 1000)),
            )
            self.genai_configured = True

            if len(self.api_key) > 12:
                masked_key = f"{self.api_key[:8]}...{self.api_key[-4:]}"
                logger.info(f"Google AI API Key loaded: {masked_key}")
        else:
            self.genai_client = None
            self.genai_configured = False
            logger.warning("Google AI API key not configured - endpoints will return 503 until a key is provided")

        logger.info(f"Google AI Studio service initialized (image model: {self.image_model}, chat model: {self.chat_model})")

    def ensure_configured(self):
        """Raise NotConfigured when no API key was provided"""
        if not self.genai_configured:
            raise not_configured_error("Google AI")

    async def _run_in_executor(self, func):
        """Run a blocking SDK call off the event loop, tracking usage and classifying failures"""
        start_time = time.time()
        self.usage_stats["total_requests"] += 1
        try:
            loop = asyncio.get_event_loop()
            result = await loop.run_in_executor(None, func)
        except Exception as e:
            self.usage_stats["failed_requests"] += 1
            error = classify_provider_error(e)
            logger.error(f"Google AI request failed ({error.kind.value}): {error.message}")
            raise error

        processing_time = time.time() - start_time
        self.usage_stats["successful_requests"] += 1
        self.usage_stats["total_processing_time"] += processing_time
        logger.info(f"Google AI request successful - Time: {processing_time:.2f}s")
        return result

    async def generate_redesigned_image(self, image: InlineImage, prompt: str, is_refinement: bool = False) -> InlineImage:
        """
        Generate a redesigned room image.

        Args:
            image: Base image, either the original upload or a previous result
            prompt: Bare style name, or a complete edit instruction when is_refinement is True
            is_refinement: Pass the prompt through verbatim instead of expanding the style template

        Returns:
            InlineImage: the generated image
        """
        self.ensure_configured()
        if not prompt or not prompt.strip():
            raise invalid_request_error("prompt is required")

        full_prompt = build_redesign_prompt(prompt, is_refinement)
        logger.info(f"Generating image with prompt: {full_prompt}")

        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_text(text=full_prompt),
                    types.Part(inline_data=types.Blob(mime_type=image.mime_type, data=image.data)),
                ],
            )
        ]
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            temperature=settings.google_ai_temperature,
        )

        def _run_generate():
            response = self.genai_client.models.generate_content(
                model=self.image_model,
                contents=contents,
                config=config,
            )
            return self._extract_image(response)

        generated = await self._run_in_executor(_run_generate)
        if generated is None:
            logger.warning("Image model returned no image part")
            raise RedesignServiceError(ErrorKind.UNKNOWN, "The image model returned no image")

        logger.info(f"Successfully generated redesign ({len(generated.data)} bytes, {generated.mime_type})")
        return generated

    async def send_chat_message(self, style: str, message: str) -> str:
        """Send one user message to the style-scoped design assistant and return its raw text"""
        self.ensure_configured()
        if not message or not message.strip():
            raise invalid_request_error("message is required")

        config = types.GenerateContentConfig(
            system_instruction=build_chat_system_instruction(style),
            temperature=settings.google_chat_temperature,
        )

        def _run_chat():
            response = self.genai_client.models.generate_content(
                model=self.chat_model,
                contents=message,
                config=config,
            )
            return response.text

        text = await self._run_in_executor(_run_chat)
        return text or EMPTY_CHAT_REPLY

    @staticmethod
    def _extract_image(response) -> Optional[InlineImage]:
        """Pull the first inline image part out of a generate_content response"""
        parts = None
        if getattr(response, "candidates", None):
            candidate = response.candidates[0]
            if candidate.content is not None and candidate.content.parts:
                parts = candidate.content.parts
        if not parts:
            return None

        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is None or not inline_data.data:
                continue

            image_bytes = inline_data.data
            if isinstance(image_bytes, str):
                image_bytes = base64.b64decode(image_bytes)
            return InlineImage(data=image_bytes, mime_type=inline_data.mime_type or "image/png")

        return None

    async def get_usage_statistics(self) -> Dict[str, Any]:
        """Get API usage statistics"""
        return {
            **self.usage_stats,
            "success_rate": (self.usage_stats["successful_requests"] / max(self.usage_stats["total_requests"], 1) * 100),
            "average_processing_time": (
                self.usage_stats["total_processing_time"] / max(self.usage_stats["successful_requests"], 1)
            ),
        }


# Global service instance
google_ai_service = GoogleAIStudioService()
