"""
Pydantic schemas for the redesign proxy and session endpoints
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class GenerateImageRequest(BaseModel):
    """Request to redesign an image (proxy endpoint, camelCase wire format)"""

    image_base64: Optional[str] = Field(default=None, alias="imageBase64", description="Data URL or raw base64 image")
    prompt: Optional[str] = Field(default=None, description="Style name, or a full edit instruction when isRefinement")
    is_refinement: bool = Field(default=False, alias="isRefinement")

    class Config:
        populate_by_name = True


class GenerateImageResponse(BaseModel):
    image: str = Field(..., description="Generated image as a data URL")


class ChatRequest(BaseModel):
    """Request to send one message to the style-scoped assistant (proxy endpoint)"""

    style: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=2000)


class ChatResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
    retry_after_seconds: Optional[int] = Field(default=None, alias="retryAfterSeconds")


class StyleInfo(BaseModel):
    name: str
    description: str


class StylesResponse(BaseModel):
    styles: List[StyleInfo]
    default_style: str


class SelectStyleRequest(BaseModel):
    style: str


class SendMessageRequest(BaseModel):
    message: str = Field(..., max_length=2000)


class ConversationTurnSchema(BaseModel):
    speaker: str
    content: str
    timestamp: str


class SessionStateResponse(BaseModel):
    """Presentation snapshot of a redesign session"""

    session_id: str
    phase: str
    styles: List[str]
    current_style: str
    generated_styles: List[str]
    pending_styles: List[str]
    conversation: List[ConversationTurnSchema]
    is_generating: bool
    is_chat_loading: bool
    loading_message: str = ""
    error: Optional[str] = None
    retry_after_seconds: Optional[int] = None
    current_image: Optional[str] = Field(default=None, description="Current style's redesign as a data URL")
    original_image: Optional[str] = Field(default=None, description="Uploaded photo as a data URL")
    last_updated: str


class SessionImageResponse(BaseModel):
    style: str
    image: str
