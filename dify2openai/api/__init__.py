"""API module for the gateway."""

from .middleware import CORS_HEADERS, cors_middleware, request_logging_middleware
from .routes import chat_completions, index, list_models

__all__ = [
    "CORS_HEADERS",
    "chat_completions",
    "cors_middleware",
    "index",
    "list_models",
    "request_logging_middleware",
]
