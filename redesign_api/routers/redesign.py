"""
Provider proxy routes: image redesign and style-scoped design chat
"""
import logging

from fastapi import APIRouter

from redesign_api.config.style_definitions import DESIGN_STYLES, default_style, get_style_description
from redesign_api.core.errors import invalid_request_error
from redesign_api.schemas.redesign import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    StyleInfo,
    StylesResponse,
)
from redesign_api.services.gateways import get_chat_service
from redesign_api.services.google_ai_service import google_ai_service
from redesign_api.utils.images import InlineImage

logger = logging.getLogger(__name__)
router = APIRouter(tags=["redesign"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid field"},
    401: {"model": ErrorResponse, "description": "Provider rejected the credential"},
    429: {"model": ErrorResponse, "description": "Provider rate limit; see Retry-After"},
    502: {"model": ErrorResponse, "description": "Provider unreachable"},
    503: {"model": ErrorResponse, "description": "Server has no provider API key"},
}


@router.post("/generate-image", response_model=GenerateImageResponse, responses=ERROR_RESPONSES)
async def generate_image(request: GenerateImageRequest):
    """Redesign an image in a style, or apply an edit instruction when isRefinement is set"""
    # A missing key is reported before any payload problem
    google_ai_service.ensure_configured()
    if not request.prompt or not request.prompt.strip():
        raise invalid_request_error("prompt is required")
    if not request.image_base64:
        raise invalid_request_error("imageBase64 is required")

    image = InlineImage.from_data_url(request.image_base64)
    generated = await google_ai_service.generate_redesigned_image(image, request.prompt, request.is_refinement)
    return GenerateImageResponse(image=generated.to_data_url())


@router.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat(request: ChatRequest):
    """Send one message to the design assistant scoped to a style"""
    chat_service = get_chat_service()
    chat_service.ensure_configured()
    if not request.message or not request.message.strip():
        raise invalid_request_error("message is required")

    style = request.style or default_style()
    text = await chat_service.send_chat_message(style, request.message)
    return ChatResponse(text=text)


@router.get("/styles", response_model=StylesResponse)
async def list_styles():
    """Ordered style catalog; the first entry is generated first"""
    return StylesResponse(
        styles=[StyleInfo(name=style, description=get_style_description(style)) for style in DESIGN_STYLES],
        default_style=default_style(),
    )
