"""API routes for the gateway."""

from .chat import chat_completions
from .index import index
from .models import list_models

__all__ = [
    "chat_completions",
    "index",
    "list_models",
]
