"""Types for the client-facing chat completion format.

- ChatRequest: the parsed inbound request, immutable once built
- TypedDicts: the OpenAI-compatible response shapes the gateway emits
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from typing_extensions import TypedDict

from ..core.exceptions import InvalidRequestError


class Delta(TypedDict, total=False):
    """A streamed delta of a choice (OpenAI format).
    
    Attributes:
        content: Incremental text content. Absent in the terminal chunk.
    """
    content: str


class ChatMessage(TypedDict):
    role: str
    content: str


class ChunkChoice(TypedDict):
    index: int
    delta: Delta
    finish_reason: Optional[str]


class ChatCompletionChunk(TypedDict):
    """One `chat.completion.chunk` frame of a streamed response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[ChunkChoice]


class Usage(TypedDict, total=False):
    """Token usage information (OpenAI format).
    
    Attributes:
        prompt_tokens: Number of tokens in the prompt.
        completion_tokens: Number of tokens in the completion.
        total_tokens: Sum of prompt and completion tokens.
    """
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class Choice(TypedDict):
    index: int
    message: ChatMessage
    finish_reason: str


class ChatCompletionResponse(TypedDict):
    """A complete `chat.completion` object for buffered responses."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Optional[Usage]
    system_fingerprint: str


@dataclass(frozen=True)
class Message:
    role: str
    content: str


@dataclass(frozen=True)
class ChatRequest:
    """An inbound chat completion request."""

    messages: tuple[Message, ...]
    model: Optional[str] = None
    stream: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatRequest":
        """Validate a decoded JSON body.

        Raises:
            InvalidRequestError: If the body is not an object or has no messages.
        """
        if not isinstance(payload, Mapping):
            raise InvalidRequestError(
                "Request body must be a JSON object", code="invalid_json_shape"
            )

        raw_messages = payload.get("messages")
        if not raw_messages or not isinstance(raw_messages, list):
            raise InvalidRequestError(
                "You must provide a messages array", code="missing_parameter"
            )

        messages = []
        for raw in raw_messages:
            if not isinstance(raw, Mapping):
                raise InvalidRequestError(
                    "Each message must be an object", code="invalid_message"
                )
            messages.append(
                Message(
                    role=str(raw.get("role") or "user"),
                    content=_content_text(raw.get("content")),
                )
            )

        model = payload.get("model")
        return cls(
            messages=tuple(messages),
            model=model if isinstance(model, str) and model else None,
            stream=bool(payload.get("stream", False)),
        )


def _content_text(content: Any) -> str:
    # Multi-part content: keep the text parts, drop images and audio.
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, Mapping) and part.get("type") == "text":
                parts.append(str(part.get("text") or ""))
            elif isinstance(part, str):
                parts.append(part)
        return "\n".join(parts)
    if content is None:
        return ""
    return content if isinstance(content, str) else str(content)
