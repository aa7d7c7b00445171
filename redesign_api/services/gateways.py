"""
Gateway contracts consumed by the redesign orchestrator, and their provider-backed implementations
"""
from typing import Protocol

from redesign_api.core.config import settings
from redesign_api.services.chatgpt_service import chatgpt_service
from redesign_api.services.google_ai_service import google_ai_service
from redesign_api.utils.images import InlineImage


class GenerationGateway(Protocol):
    async def request_redesign(self, image: InlineImage, prompt: str, is_refinement: bool = False) -> InlineImage:
        ...


class ConversationGateway(Protocol):
    async def send_turn(self, style: str, message: str) -> str:
        ...


class ChatService(Protocol):
    def ensure_configured(self) -> None:
        ...

    async def send_chat_message(self, style: str, message: str) -> str:
        ...


def get_chat_service() -> ChatService:
    """Chat provider selected by configuration"""
    if settings.chat_provider == "openai":
        return chatgpt_service
    return google_ai_service


def chat_configured() -> bool:
    if settings.chat_provider == "openai":
        return chatgpt_service.configured
    return google_ai_service.genai_configured


class ProviderGenerationGateway:
    """Generation gateway calling the image provider in-process"""

    async def request_redesign(self, image: InlineImage, prompt: str, is_refinement: bool = False) -> InlineImage:
        return await google_ai_service.generate_redesigned_image(image, prompt, is_refinement)


class ProviderConversationGateway:
    """Conversation gateway calling the configured chat provider in-process"""

    async def send_turn(self, style: str, message: str) -> str:
        return await get_chat_service().send_chat_message(style, message)
