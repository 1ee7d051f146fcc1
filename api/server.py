"""
FastAPI Server - Main Application Entry Point.

This module builds the FastAPI application: routers, middleware, exception
handlers, and the shared classifier created at startup.

Run with uvicorn's factory mode:
    uvicorn api.server:create_app --factory --host 0.0.0.0 --port 5000
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from api.exceptions import setup_exception_handlers
from api.routers import classify_router, health_router
from app_settings import Settings, get_settings
from integrations.classifier import ImageClassifier, build_classifier
from utils.logging import get_logger, logging_middleware_helper

logger = get_logger("api.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    settings: Settings = app.state.settings
    owns_classifier = app.state.classifier is None

    # Startup: refuse to serve without credentials (ConfigError propagates)
    if owns_classifier:
        app.state.classifier = build_classifier(settings)
    logger.info(
        f"[STARTUP] Classifier ready: provider={app.state.classifier.name} "
        f"env={settings.environment}"
    )

    yield

    # Shutdown
    if owns_classifier:
        await app.state.classifier.close()
        app.state.classifier = None
    logger.info("[SHUTDOWN] Classification relay shutting down")


def create_app(
    settings: Optional[Settings] = None,
    classifier: Optional[ImageClassifier] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (loaded from the environment if omitted)
        classifier: Pre-built classifier to share across requests. If omitted,
            one is built from settings during startup.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Image Classification Relay",
        description="Forwards uploaded images to a remote multimodal model and returns a category",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )
    app.state.settings = settings
    app.state.classifier = classifier

    # Add request logging middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log all HTTP requests with request ID tracking."""
        return await logging_middleware_helper(request, call_next)

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(classify_router)

    return app
