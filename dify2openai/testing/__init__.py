"""Testing utilities for in-process gateway simulations."""

from .fake_upstream import (
    FakeDifyUpstream,
    UpstreamResponse,
    encode_event,
    error_event,
    message_end_event,
    message_event,
    split_stream,
    text_chunk_event,
    workflow_finished_event,
)

__all__ = [
    "FakeDifyUpstream",
    "UpstreamResponse",
    "encode_event",
    "error_event",
    "message_end_event",
    "message_event",
    "split_stream",
    "text_chunk_event",
    "workflow_finished_event",
]
