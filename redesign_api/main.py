"""
FastAPI main application for the room redesign API
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from redesign_api.core.config import settings
from redesign_api.core.errors import RedesignServiceError
from redesign_api.core.logging import setup_logging
from redesign_api.middleware import RequestLoggingMiddleware
from redesign_api.routers import redesign, sessions
from redesign_api.services.gateways import chat_configured
from redesign_api.services.google_ai_service import google_ai_service
from redesign_api.services.session_manager import session_manager

logger = logging.getLogger(__name__)


def _key_preview(key: str) -> str:
    return f"{key[:7]}...{key[-4:]}" if len(key) > 11 else "***"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info("Starting Room Redesign API...")

    logger.info("=" * 60)
    logger.info("ENVIRONMENT VARIABLES CHECK")
    logger.info("=" * 60)

    if settings.google_ai_api_key:
        logger.info(f"✅ GOOGLE_AI_API_KEY is set: {_key_preview(settings.google_ai_api_key)}")
    else:
        logger.error("❌ GOOGLE_AI_API_KEY (or API_KEY) is NOT set - image generation will return 503!")

    if settings.chat_provider == "openai":
        if settings.openai_api_key:
            logger.info(f"✅ OPENAI_API_KEY is set: {_key_preview(settings.openai_api_key)}")
        else:
            logger.error("❌ OPENAI_API_KEY is NOT set - chat will return 503!")
    logger.info(f"Chat provider: {settings.chat_provider}")

    logger.info("=" * 60)
    logger.info("Application started")

    yield

    # Shutdown
    logger.info("Shutting down Room Redesign API...")
    await session_manager.close_all()
    logger.info("Application stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="AI room redesign: style catalog, image generation and design chat",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "X-Request-ID"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(RedesignServiceError)
async def redesign_error_handler(request: Request, exc: RedesignServiceError):
    """Map a classified provider failure to its HTTP status and error body"""
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(level, f"{request.method} {request.url.path} failed ({exc.kind.value}): {exc.message}")

    headers = {}
    if exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg', 'invalid request')}" if field else first.get("msg", "invalid request")
    return JSONResponse(status_code=400, content={"error": message})


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "ok",
        "apiKeyConfigured": google_ai_service.genai_configured,
        "chatConfigured": chat_configured(),
        "timestamp": time.time(),
        "version": settings.version,
        "usage": await google_ai_service.get_usage_statistics(),
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "generate_image": "/api/generate-image",
            "chat": "/api/chat",
            "styles": "/api/styles",
            "sessions": "/api/sessions",
            "health": "/health",
        },
    }


app.include_router(redesign.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")


def run():
    import uvicorn

    uvicorn.run(
        "redesign_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )


if __name__ == "__main__":
    run()
