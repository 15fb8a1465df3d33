"""Client-facing response builders: streamed SSE and buffered JSON."""

from .aggregate import build_final_response, collect_stream, render_buffered_result
from .streaming import ChatCompletionStreamEmitter, generate_completion_id

__all__ = [
    "ChatCompletionStreamEmitter",
    "build_final_response",
    "collect_stream",
    "generate_completion_id",
    "render_buffered_result",
]
