#!/usr/bin/env python3
"""
Standalone uvicorn runner for the classification relay.

Usage:
    python run_service.py

Environment Variables:
    GEMINI_API_KEY: Provider credential (required, may come from .env)
    API_HOST / API_PORT: Listener (default: 0.0.0.0:5000)
    ENVIRONMENT: 'local', 'development' or 'production' (default: local)
    LOG_LEVEL: Root log level (default: INFO)

Exits with status 1 before listening if the credential is missing.
"""
import sys

import uvicorn

from app_settings import ConfigError, get_settings
from utils.logging import get_logger, setup_logging


def main() -> int:
    """Run the classification relay FastAPI server."""
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.is_production)
    logger = get_logger("run_service")

    try:
        settings.require_api_key()
    except ConfigError as e:
        logger.critical(f"[FATAL] {e}")
        return 1

    logger.info(f"Starting classification relay on {settings.api_host}:{settings.api_port}")
    logger.info(f"Environment: {settings.environment}")

    uvicorn.run(
        "api.server:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
