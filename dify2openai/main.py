"""Main FastAPI application for the Dify to OpenAI gateway."""

import logging
from typing import Optional

from fastapi import FastAPI

from .api import (
    chat_completions,
    cors_middleware,
    index,
    list_models,
    request_logging_middleware,
)
from .core.config import Settings, load_settings

logger = logging.getLogger("dify2openai")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Validated settings. Loaded from the config file and the
            environment when omitted.

    Returns:
        The configured FastAPI application instance.

    Raises:
        ConfigurationError: If settings are loaded here and are invalid.
    """
    if settings is None:
        settings = load_settings()

    app = FastAPI(title="Dify2OpenAI")
    app.state.settings = settings

    @app.on_event("startup")
    async def startup_event():
        logger.info("Dify2OpenAI gateway starting up...")
        logger.info("Upstream: %s (%s app)", settings.upstream_url, settings.bot_type.value)
        if settings.input_variable:
            logger.info("Query sent as input variable '%s'", settings.input_variable)
        if settings.output_variable:
            logger.info("Answer read from output variable '%s'", settings.output_variable)
        logger.info("Serving model '%s' on %s:%s", settings.model_name, settings.host, settings.port)

    app.get("/")(index)
    app.get("/v1/models")(list_models)
    app.post("/v1/chat/completions")(chat_completions)

    # The last middleware added runs first: CORS wraps the request logger.
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(cors_middleware)

    logger.info("FastAPI application created")
    return app


__all__ = ["create_app"]
