"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
from typing import Any, Callable, Generator

import httpx
import pytest

from dify2openai.core.config import BotType, Settings
from dify2openai.core.upstream import clear_upstream_transports, register_upstream_transport
from dify2openai.main import create_app
from dify2openai.testing import FakeDifyUpstream

UPSTREAM_URL = "http://dify.local/v1"
AUTH_HEADERS = {"Authorization": "Bearer app-test-token"}


def build_settings(**overrides: Any) -> Settings:
    """Settings pointing at the fake upstream host."""
    values: dict[str, Any] = {"api_url": UPSTREAM_URL, "bot_type": BotType.CHAT}
    values.update(overrides)
    return Settings(**values)


def parse_sse_frames(body: bytes) -> list[str]:
    """Return the data payloads of an SSE body, in order."""
    frames = []
    for block in body.decode("utf-8").split("\n\n"):
        if not block.strip():
            continue
        assert block.startswith("data: "), block
        frames.append(block[len("data: "):])
    return frames


def decode_chunks(frames: list[str]) -> list[dict]:
    return [json.loads(frame) for frame in frames if frame != "[DONE]"]


async def aiter_chunks(chunks: list[bytes]):
    for chunk in chunks:
        yield chunk


# =============================================================================
# Upstream Fixtures
# =============================================================================


@pytest.fixture
def fake_upstream() -> Generator[FakeDifyUpstream, None, None]:
    """A fake Dify app reachable at UPSTREAM_URL for the duration of a test.

    Stream chunks reach the gateway one read at a time, as queued.
    """
    upstream = FakeDifyUpstream()
    register_upstream_transport(UPSTREAM_URL, upstream.transport())
    yield upstream
    clear_upstream_transports()


@pytest.fixture
def make_client() -> Callable[..., httpx.AsyncClient]:
    """Factory for async clients talking to an in-process gateway."""

    def _make(settings: Settings | None = None, **overrides: Any) -> httpx.AsyncClient:
        app = create_app(settings or build_settings(**overrides))
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://gateway.local",
        )

    return _make
