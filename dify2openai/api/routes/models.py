"""Models listing endpoint - OpenAI compatible."""

import logging

from fastapi import Request

from ..dependencies import get_settings

logger = logging.getLogger("dify2openai")


async def list_models(request: Request) -> dict:
    """List the single model this gateway exposes, in OpenAI API format.
    
    GET /v1/models
    """
    logger.info("Received models list request")
    settings = get_settings(request)
    return {
        "object": "list",
        "data": [
            {
                "id": settings.model_name,
                "object": "model",
                "owned_by": "dify",
                "permission": None,
            }
        ],
    }
