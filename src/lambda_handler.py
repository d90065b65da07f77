"""AWS Lambda handler serving the FastAPI app through API Gateway.

Requests are translated to ASGI by Mangum. The app is built once per
container during cold start.
"""

import logging
import os
from typing import Any

from mangum import Mangum

from lambda_dependencies import get_fastapi_app, initialize_lambda_environment

if os.getenv("ENVIRONMENT") != "test":
    initialize_lambda_environment()

logger = logging.getLogger(__name__)

# Cached for warm starts; skipped in test mode
if os.getenv("ENVIRONMENT") != "test":
    mangum_handler: Mangum | None = Mangum(get_fastapi_app(), lifespan="off")
else:
    mangum_handler = None


def get_mangum_handler() -> Mangum:
    """Return the Mangum adapter, creating it on first use."""
    global mangum_handler

    if mangum_handler is None:
        mangum_handler = Mangum(get_fastapi_app(), lifespan="off")
    return mangum_handler


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point for API Gateway requests.

    Args:
        event: The API Gateway event payload
        context: The Lambda context object

    Returns:
        API Gateway response dict
    """
    logger.info(f"Received Lambda invocation, request_id: {getattr(context, 'aws_request_id', None)}")

    try:
        result: dict[str, Any] = get_mangum_handler()(event, context)
        return result
    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "body": "Internal server error",
        }
