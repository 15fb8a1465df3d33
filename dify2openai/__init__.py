"""dify2openai - Dify applications behind an OpenAI-compatible API

Accepts chat completion requests, forwards them to a Dify chat, completion
or workflow app, and translates Dify's event stream back into chat
completion chunks (streaming) or a single chat completion (buffered).

This module provides:
- create_app: Builds the FastAPI application from validated Settings
- Settings / load_settings: Configuration from YAML, .env and environment
- The stream translation engine in ``dify2openai.core``

Example:
    >>> from dify2openai import create_app, load_settings
    >>> import uvicorn
    >>> settings = load_settings()
    >>> uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
"""

from .core import BotType, ConfigurationError, Settings, load_settings
from .logging import logger, setup_logging
from .main import create_app

__all__ = [
    "BotType",
    "ConfigurationError",
    "Settings",
    "create_app",
    "load_settings",
    "logger",
    "setup_logging",
]
