"""
Configuration settings for the FastAPI application
"""
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Room Redesign API"
    version: str = "1.0.0"
    environment: str = "development"

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Google AI Studio (image generation + default chat provider)
    # API_KEY is accepted as a shorter alias for existing proxy deployments
    google_ai_api_key: str = Field(default="", validation_alias=AliasChoices("google_ai_api_key", "api_key"))
    google_image_model: str = "gemini-2.5-flash-image"
    google_chat_model: str = "gemini-2.5-flash"
    google_ai_temperature: float = 0.4
    google_chat_temperature: float = 0.7

    # Chat provider: "google" or "openai"
    chat_provider: str = "google"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 256
    openai_temperature: float = 0.7

    # Transport timeout for provider calls (seconds)
    provider_timeout_seconds: float = 120.0

    # File upload
    max_upload_size: int = 10 * 1024 * 1024  # 10MB
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # In-memory redesign sessions
    session_ttl_hours: int = 6
    max_sessions: int = 200

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env
        populate_by_name = True


# Global settings instance
settings = Settings()
