"""Classification of Dify stream frames into typed events.

Dify streams one JSON object per line, prefixed with ``data:``:

    data: {"event": "message", "answer": "Hel", "created_at": 1705395332}
    data: {"event": "message", "answer": "lo", "created_at": 1705395332}
    data: {"event": "message_end", "metadata": {"usage": {...}}}

Workflow apps stream ``text_chunk`` events and finish with
``workflow_finished``, whose ``data.outputs`` holds the workflow result.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .exceptions import FrameParseError

logger = logging.getLogger("dify2openai")

DATA_PREFIX = "data:"

# SSE fields other than data carry nothing for us (e.g. "event: ping").
_IGNORED_FIELD_PREFIXES = ("event:", "id:", "retry:", ":")


@dataclass(frozen=True)
class ContentEvent:
    """An event carrying a piece of the answer text."""

    text: str
    created_at: Optional[int] = None


@dataclass(frozen=True)
class MessageEvent(ContentEvent):
    pass


@dataclass(frozen=True)
class AgentMessageEvent(ContentEvent):
    pass


@dataclass(frozen=True)
class TextChunkEvent(ContentEvent):
    pass


@dataclass(frozen=True)
class MessageEndEvent:
    usage: Optional[dict[str, Any]] = None
    created_at: Optional[int] = None


@dataclass(frozen=True)
class WorkflowFinishedEvent:
    outputs: dict[str, Any] = field(default_factory=dict)
    usage: Optional[dict[str, Any]] = None
    created_at: Optional[int] = None


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    code: Optional[str] = None
    status: Optional[int] = None
    created_at: Optional[int] = None


@dataclass(frozen=True)
class UnknownEvent:
    name: Optional[str] = None
    created_at: Optional[int] = None


ClassifiedEvent = Union[
    MessageEvent,
    AgentMessageEvent,
    TextChunkEvent,
    MessageEndEvent,
    WorkflowFinishedEvent,
    ErrorEvent,
    UnknownEvent,
]


def parse_frame(line: str) -> Any:
    """Strip the ``data:`` marker and decode the JSON payload of a line."""
    payload = line.strip()
    if payload.startswith(DATA_PREFIX):
        payload = payload[len(DATA_PREFIX):].strip()
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise FrameParseError(f"invalid JSON frame: {exc}", line=line) from exc


def classify_line(line: str) -> Optional[ClassifiedEvent]:
    """Turn one decoded line into an event.

    Returns None for blank lines, non-data SSE fields and frames that are
    not JSON objects. A bad frame is logged and skipped; the caller goes on
    with the next line.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(_IGNORED_FIELD_PREFIXES):
        return None

    try:
        payload = parse_frame(stripped)
    except FrameParseError as exc:
        logger.warning("Skipping upstream frame: %s (%s)", exc.message, stripped[:100])
        return None

    if not isinstance(payload, Mapping):
        logger.debug("Skipping non-object upstream frame: %s", stripped[:100])
        return None

    return classify_payload(payload)


def classify_payload(payload: Mapping[str, Any]) -> ClassifiedEvent:
    """Map a decoded Dify frame to its event variant."""
    name = payload.get("event")
    created_at = _as_timestamp(payload.get("created_at"))

    if name == "message":
        return MessageEvent(text=_as_text(payload.get("answer")), created_at=created_at)
    if name == "agent_message":
        return AgentMessageEvent(text=_as_text(payload.get("answer")), created_at=created_at)
    if name == "text_chunk":
        data = _as_mapping(payload.get("data"))
        return TextChunkEvent(text=_as_text(data.get("text")), created_at=created_at)
    if name == "message_end":
        return MessageEndEvent(usage=_extract_usage(payload), created_at=created_at)
    if name == "workflow_finished":
        data = _as_mapping(payload.get("data"))
        return WorkflowFinishedEvent(
            outputs=dict(_as_mapping(data.get("outputs"))),
            usage=_extract_usage(payload),
            created_at=created_at,
        )
    if name == "error":
        code = payload.get("code")
        status = payload.get("status")
        return ErrorEvent(
            message=_as_text(payload.get("message")) or "unknown error",
            code=str(code) if code is not None else None,
            status=status if isinstance(status, int) else None,
            created_at=created_at,
        )
    return UnknownEvent(name=name if isinstance(name, str) else None, created_at=created_at)


def _extract_usage(payload: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    usage = _as_mapping(payload.get("metadata")).get("usage")
    if isinstance(usage, Mapping):
        return dict(usage)
    return None


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_timestamp(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None
