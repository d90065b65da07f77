"""Shared dependency factory for the Lambda handler.

Dependencies are created once and reused across invocations within the same
Lambda container.
"""

import logging
import os

from fastapi import FastAPI

from restaurant_menu_admin.handlers.api_handler import create_app
from restaurant_menu_admin.observability import configure_logging, setup_observability
from restaurant_menu_admin.services.backend_client import BackendClient, create_backend_client

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_backend_client: BackendClient | None = None
_fastapi_app: FastAPI | None = None


def get_backend_client() -> BackendClient:
    """Create or retrieve the cached anonymous backend client.

    Raises:
        ValueError: If the project URL or anon key is missing
    """
    global _backend_client

    if _backend_client is not None:
        return _backend_client

    _backend_client = create_backend_client()

    logger.info("Backend client initialized")
    return _backend_client


def get_fastapi_app() -> FastAPI:
    """Create or retrieve the cached FastAPI application."""
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    secure_cookies = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"
    _fastapi_app = create_app(backend_client=get_backend_client(), secure_cookies=secure_cookies)
    setup_observability(_fastapi_app)

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize logging. Call once during Lambda cold start."""
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Lambda environment initialized")
