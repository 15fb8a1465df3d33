"""Per-request translation state and its transition functions.

A request owns exactly one TranslationState. Decoded lines are classified
and applied in arrival order; the first terminal event (message_end,
workflow_finished or error) freezes the state and every later event is
ignored.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .events import (
    ClassifiedEvent,
    ContentEvent,
    ErrorEvent,
    MessageEndEvent,
    WorkflowFinishedEvent,
    classify_line,
)
from .sse import LineDecoder

logger = logging.getLogger("dify2openai")

DEFAULT_WORKFLOW_USAGE = {
    "prompt_tokens": 100,
    "completion_tokens": 10,
    "total_tokens": 110,
}


@dataclass(frozen=True)
class ContentDelta:
    text: str
    created_at: Optional[int] = None


@dataclass(frozen=True)
class StreamFinished:
    created_at: Optional[int] = None
    usage: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class StreamFailed:
    message: str
    code: Optional[str] = None


Transition = Union[ContentDelta, StreamFinished, StreamFailed]


@dataclass
class TranslationState:
    """Mutable state of one upstream stream being translated."""

    decoder: LineDecoder = field(default_factory=LineDecoder)
    is_first_content_chunk: bool = True
    accumulated_text: str = ""
    usage: Optional[dict[str, Any]] = None
    ended: bool = False
    errored: bool = False
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.ended or self.errored


def apply_event(
    state: TranslationState,
    event: ClassifiedEvent,
    output_variable: Optional[str] = None,
) -> Optional[Transition]:
    """Advance the state by one event and report what changed.

    Returns None when the event has no effect: unknown kinds, and anything
    arriving after a terminal event.
    """
    if state.terminal:
        return None

    if isinstance(event, ContentEvent):
        text = event.text
        if state.is_first_content_chunk:
            text = text.lstrip()
            state.is_first_content_chunk = False
        state.accumulated_text += text
        return ContentDelta(text=text, created_at=event.created_at)

    if isinstance(event, MessageEndEvent):
        state.ended = True
        state.usage = event.usage
        return StreamFinished(created_at=event.created_at, usage=state.usage)

    if isinstance(event, WorkflowFinishedEvent):
        state.ended = True
        state.accumulated_text = render_workflow_outputs(event.outputs, output_variable)
        state.usage = event.usage if event.usage is not None else dict(DEFAULT_WORKFLOW_USAGE)
        return StreamFinished(created_at=event.created_at, usage=state.usage)

    if isinstance(event, ErrorEvent):
        state.errored = True
        state.error_code = event.code
        state.error_message = event.message
        logger.error("Upstream error event: %s, %s", event.code, event.message)
        return StreamFailed(message=event.message, code=event.code)

    return None


def render_workflow_outputs(
    outputs: dict[str, Any], output_variable: Optional[str] = None
) -> str:
    """Pick the answer text out of a workflow's outputs map."""
    if output_variable:
        value = outputs.get(output_variable)
        if value is None:
            logger.warning("Workflow outputs have no '%s' entry", output_variable)
            return ""
        return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return json.dumps(outputs, ensure_ascii=False)


def apply_lines(
    state: TranslationState,
    lines: list[str],
    output_variable: Optional[str] = None,
) -> list[Transition]:
    transitions: list[Transition] = []
    for line in lines:
        if state.terminal:
            break
        event = classify_line(line)
        if event is None:
            continue
        transition = apply_event(state, event, output_variable)
        if transition is not None:
            transitions.append(transition)
    return transitions


def feed_chunk(
    state: TranslationState,
    chunk: bytes,
    output_variable: Optional[str] = None,
) -> list[Transition]:
    """Decode one upstream chunk and apply every complete line in it."""
    if state.terminal:
        return []
    return apply_lines(state, state.decoder.feed(chunk), output_variable)


def finish_stream(
    state: TranslationState, output_variable: Optional[str] = None
) -> list[Transition]:
    """Apply whatever unterminated line is left once the upstream has ended."""
    lines = state.decoder.flush()
    if state.terminal:
        return []
    return apply_lines(state, lines, output_variable)
