"""
FastAPI application for the development wizard API.

Production deployment configuration via environment variables.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.wizard import get_draft_repository
from utils.config import Config
from web.draft_routes import router as draft_router


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

# Production mode detection
IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# CORS configuration - locked down for production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]

# Debug mode - never enabled in production
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true" and not IS_PRODUCTION


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = Config.load()

    app = FastAPI(
        title="Development Wizard",
        description="Draft, autosave, and publish development listings",
        version="0.1.0",
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=DEBUG_MODE,
    )

    # Healthcheck registered before middleware. No dependencies, no IO.
    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def on_startup():
        """Load persisted drafts."""
        repo = get_draft_repository(config.drafts_path)
        logger.info("Development wizard started with %d drafts", repo.count())

    app.include_router(draft_router)

    return app


app = create_app()
