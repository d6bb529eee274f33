"""CORS configuration for the CRM frontend."""
import logging

from fastapi.middleware.cors import CORSMiddleware

from crm_reminders.config import settings

logger = logging.getLogger(__name__)

# Base allowed origins for development
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Add production frontend URL if provided
if settings.frontend_url and settings.frontend_url not in ALLOWED_ORIGINS:
    ALLOWED_ORIGINS.append(settings.frontend_url)


def add_cors_middleware(app):
    """Add CORS middleware to the FastAPI application."""
    if settings.environment == "production":
        origins = [settings.frontend_url] if settings.frontend_url else []
    else:
        origins = ALLOWED_ORIGINS
    logger.info(f"[CORS] Environment: {settings.environment}, allowed origins: {origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
