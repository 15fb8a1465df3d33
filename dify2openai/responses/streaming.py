"""Stream emitter converting Dify events into Chat Completions SSE.

Dify Events:
    data: {"event": "message", "answer": " Hello", "created_at": 1705395332}
    data: {"event": "message_end", "metadata": {"usage": {...}}}

Chat Completion Events:
    data: {"object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"Hello"},"finish_reason":null}]}
    data: {"object":"chat.completion.chunk","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}
    data: [DONE]
"""

import logging
import time
import uuid
from typing import AsyncIterator, Awaitable, Callable, Iterator, Optional

from ..core.exceptions import UnexpectedTermination
from ..core.sse import DONE_FRAME, format_sse_data
from ..core.state import (
    ContentDelta,
    StreamFailed,
    StreamFinished,
    Transition,
    TranslationState,
    feed_chunk,
    finish_stream,
)
from ..types.chat import ChatCompletionChunk, Delta

logger = logging.getLogger("dify2openai")


def generate_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


class ChatCompletionStreamEmitter:
    """Translates one upstream stream into client-facing SSE frames.

    The emitter owns the request's TranslationState. Every content event
    becomes one chunk frame; the first terminal event produces the closing
    frames and ends the stream. Nothing is yielded after ``[DONE]``.
    """

    def __init__(
        self,
        model: str,
        output_variable: Optional[str] = None,
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> None:
        self.model = model
        self.output_variable = output_variable
        self.disconnect_checker = disconnect_checker
        self.completion_id = generate_completion_id()
        self.state = TranslationState()
        self.closed = False
        self.failed = False
        self.disconnected = False

    async def adapt_stream(self, upstream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Transform the upstream byte stream into chat completion frames.

        Args:
            upstream: Raw byte chunks from the Dify response

        Yields:
            SSE frames as bytes
        """
        async for chunk in upstream:
            if self.disconnect_checker and await self.disconnect_checker():
                logger.info("Client disconnected, abandoning upstream stream")
                self.disconnected = True
                self.closed = True
                return
            for frame in self._emit(feed_chunk(self.state, chunk, self.output_variable)):
                yield frame
            if self.closed:
                return

        for frame in self._emit(finish_stream(self.state, self.output_variable)):
            yield frame
        if self.closed:
            return

        error = UnexpectedTermination()
        logger.error("Upstream stream ended without a terminal event")
        for frame in self.close_with_error(error.message):
            yield frame

    def _emit(self, transitions: list[Transition]) -> Iterator[bytes]:
        # Lazy: ``failed`` is only set once the error frame itself is produced.
        for transition in transitions:
            if self.closed:
                return
            if isinstance(transition, ContentDelta):
                yield self._chunk_frame({"content": transition.text}, None, transition.created_at)
            elif isinstance(transition, StreamFinished):
                yield self._chunk_frame({}, "stop", transition.created_at)
                self.closed = True
                yield DONE_FRAME
            elif isinstance(transition, StreamFailed):
                yield from self.close_with_error(transition.message)

    def close_with_error(self, message: str) -> list[bytes]:
        self.closed = True
        self.failed = True
        return [format_sse_data({"error": message}), DONE_FRAME]

    def _chunk_frame(
        self, delta: Delta, finish_reason: Optional[str], created_at: Optional[int]
    ) -> bytes:
        chunk: ChatCompletionChunk = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": created_at if created_at is not None else int(time.time()),
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }
        return format_sse_data(chunk)
