"""Buffered responses: drain the upstream stream, answer once."""

import logging
import time
from typing import Any, AsyncIterator, Optional

from ..core.exceptions import UnexpectedTermination, UpstreamProtocolError
from ..core.state import TranslationState, feed_chunk, finish_stream
from ..types.chat import ChatCompletionResponse
from .streaming import generate_completion_id

logger = logging.getLogger("dify2openai")

SYSTEM_FINGERPRINT = "fp_2f57f81c11"


async def collect_stream(
    upstream: AsyncIterator[bytes],
    output_variable: Optional[str] = None,
) -> TranslationState:
    """Run the whole upstream stream through a fresh TranslationState.

    Reading stops at the first terminal event; nothing after it can change
    the outcome.
    """
    state = TranslationState()
    async for chunk in upstream:
        feed_chunk(state, chunk, output_variable)
        if state.terminal:
            return state
    finish_stream(state, output_variable)
    return state


def build_final_response(state: TranslationState, model: str) -> ChatCompletionResponse:
    """Assemble the chat.completion object from a finished state.

    Raises:
        UpstreamProtocolError: If the upstream reported an error.
        UnexpectedTermination: If the stream ended with no terminal event.
    """
    if state.errored:
        raise UpstreamProtocolError(state.error_message or "unknown error", code=state.error_code)
    if not state.ended:
        raise UnexpectedTermination()

    return {
        "id": generate_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": state.accumulated_text.strip()},
                "finish_reason": "stop",
            }
        ],
        "usage": state.usage,
        "system_fingerprint": SYSTEM_FINGERPRINT,
    }


def render_buffered_result(state: TranslationState, model: str) -> tuple[int, dict[str, Any]]:
    """Status code and JSON body for a buffered request."""
    try:
        return 200, dict(build_final_response(state, model))
    except UpstreamProtocolError as exc:
        logger.error("Upstream reported an error: %s, %s", exc.code, exc.message)
        return 500, {"error": "Processing error"}
    except UnexpectedTermination as exc:
        logger.error("Upstream stream ended without a terminal event")
        return 500, {"error": exc.message}
