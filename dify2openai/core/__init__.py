"""Core module initialization.

The upstream client lives in ``core.upstream`` and is imported directly
by its users.
"""

from .exceptions import (
    AuthError,
    ConfigurationError,
    FrameParseError,
    GatewayError,
    InvalidRequestError,
    UnexpectedTermination,
    UpstreamProtocolError,
    UpstreamStatusError,
)
from .config import BotType, Settings, build_settings, load_settings
from .events import classify_line
from .sse import LineDecoder, format_sse_data
from .state import TranslationState, apply_event, feed_chunk, finish_stream

__all__ = [
    "AuthError",
    "BotType",
    "ConfigurationError",
    "FrameParseError",
    "GatewayError",
    "InvalidRequestError",
    "LineDecoder",
    "Settings",
    "TranslationState",
    "UnexpectedTermination",
    "UpstreamProtocolError",
    "UpstreamStatusError",
    "apply_event",
    "build_settings",
    "classify_line",
    "feed_chunk",
    "finish_stream",
    "format_sse_data",
    "load_settings",
]
