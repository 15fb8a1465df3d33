"""Tests for building and sending the upstream request."""

import json

import httpx
import pytest

from conftest import UPSTREAM_URL, build_settings
from dify2openai.core.config import BotType
from dify2openai.core.exceptions import UpstreamStatusError
from dify2openai.core.upstream import (
    build_query,
    build_upstream_body,
    clear_upstream_transports,
    format_httpx_error,
    get_upstream_transport,
    open_upstream_stream,
    register_upstream_transport,
)
from dify2openai.types.chat import ChatRequest, Message

CONVERSATION = (
    Message(role="system", content="Be brief."),
    Message(role="user", content="Hi"),
    Message(role="assistant", content="Hello!"),
    Message(role="user", content="What is Dify?"),
)


class TestBuildQuery:
    def test_chat_renders_history_and_question(self):
        query = build_query(CONVERSATION, BotType.CHAT)
        assert query == (
            "here is our talk history:\n'''\n"
            "system: Be brief.\nuser: Hi\nassistant: Hello!"
            "\n'''\n\nhere is my question:\nWhat is Dify?"
        )

    def test_chat_with_single_message_has_empty_history(self):
        query = build_query((Message(role="user", content="Hi"),), BotType.CHAT)
        assert query == "here is our talk history:\n'''\n\n'''\n\nhere is my question:\nHi"

    @pytest.mark.parametrize("bot_type", [BotType.COMPLETION, BotType.WORKFLOW])
    def test_completion_and_workflow_use_last_message(self, bot_type):
        assert build_query(CONVERSATION, bot_type) == "What is Dify?"


class TestBuildUpstreamBody:
    def test_query_field_without_input_variable(self):
        request = ChatRequest(messages=CONVERSATION, stream=False)
        body = build_upstream_body(request, build_settings(bot_type=BotType.WORKFLOW))

        assert body == {
            "inputs": {},
            "query": "What is Dify?",
            "response_mode": "streaming",
            "conversation_id": "",
            "user": "apiuser",
            "auto_generate_name": False,
        }

    def test_input_variable_carries_the_query(self):
        request = ChatRequest(messages=CONVERSATION)
        settings = build_settings(bot_type=BotType.COMPLETION, input_variable="question", user="bot")
        body = build_upstream_body(request, settings)

        assert body["inputs"] == {"question": "What is Dify?"}
        assert "query" not in body
        assert body["user"] == "bot"
        assert body["response_mode"] == "streaming"


class TestOpenUpstreamStream:
    """Tests for the streaming upstream call."""

    @pytest.mark.asyncio
    async def test_posts_body_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b'data: {"event": "message_end"}\n\n')

        register_upstream_transport(UPSTREAM_URL, httpx.MockTransport(handler))
        try:
            settings = build_settings(bot_type=BotType.CHAT)
            connection = await open_upstream_stream(settings, {"inputs": {}, "query": "q"}, "tok")
            data = b"".join([chunk async for chunk in connection.aiter_bytes()])
            await connection.aclose()
        finally:
            clear_upstream_transports()

        assert seen["url"] == "http://dify.local/v1/chat-messages"
        assert seen["auth"] == "Bearer tok"
        assert seen["body"] == {"inputs": {}, "query": "q"}
        assert data == b'data: {"event": "message_end"}\n\n'
        assert connection.closed is True

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"code": "unauthorized", "message": "Invalid token"})

        register_upstream_transport(UPSTREAM_URL, httpx.MockTransport(handler))
        try:
            with pytest.raises(UpstreamStatusError) as excinfo:
                await open_upstream_stream(build_settings(), {}, "bad")
        finally:
            clear_upstream_transports()

        assert excinfo.value.status_code == 401
        assert b"Invalid token" in excinfo.value.body

    @pytest.mark.asyncio
    async def test_connect_error_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        register_upstream_transport(UPSTREAM_URL, httpx.MockTransport(handler))
        try:
            with pytest.raises(httpx.ConnectError):
                await open_upstream_stream(build_settings(), {}, "tok")
        finally:
            clear_upstream_transports()


class TestTransportRegistry:
    def test_register_by_url_or_host(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        try:
            register_upstream_transport("http://Example.local:8080/v1", transport)
            assert get_upstream_transport("http://example.local:8080/v1/workflows/run") is transport
            assert get_upstream_transport("http://other.local/v1") is None
        finally:
            clear_upstream_transports()

    def test_register_requires_host(self):
        with pytest.raises(ValueError):
            register_upstream_transport("", httpx.MockTransport(lambda request: httpx.Response(200)))


def test_format_httpx_error_includes_request_and_timeout():
    request = httpx.Request("POST", "http://dify.local/v1/workflows/run")
    message = format_httpx_error(httpx.ReadTimeout("timed out", request=request), timeout=60.0)

    assert message.startswith("ReadTimeout | timed out")
    assert "request=POST http://dify.local/v1/workflows/run" in message
    assert "timeout=60.0s" in message
