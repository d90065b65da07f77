"""Main application entry point for the restaurant menu admin service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os

from fastapi import FastAPI

from restaurant_menu_admin.handlers.api_handler import create_app
from restaurant_menu_admin.observability import configure_logging, setup_observability
from restaurant_menu_admin.services.backend_client import create_backend_client

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the backend client
    3. Creates the FastAPI app with public and admin routes
    4. Sets up observability

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing restaurant menu admin service...")

    backend_client = create_backend_client()
    secure_cookies = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"

    app = create_app(backend_client=backend_client, secure_cookies=secure_cookies)
    setup_observability(app)

    logger.info("Restaurant menu admin service initialized successfully")
    return app


# Skip creating the real app during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
