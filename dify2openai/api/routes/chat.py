"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from typing import AsyncIterator

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from ...core.config import Settings
from ...core.exceptions import AuthError, InvalidRequestError, UpstreamStatusError
from ...core.upstream import (
    UpstreamConnection,
    build_upstream_body,
    format_httpx_error,
    open_upstream_stream,
)
from ...responses import ChatCompletionStreamEmitter, collect_stream, render_buffered_result
from ...types.chat import ChatRequest
from ..dependencies import extract_bearer_token, get_settings

logger = logging.getLogger("dify2openai")

UNAUTHORIZED_BODY = {"code": 401, "errmsg": "Unauthorized."}


def _invalid_request(message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "message": message,
                "type": "invalid_request_error",
                "code": code,
            }
        },
    )


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.
    
    POST /v1/chat/completions
    """
    logger.info("Received chat completions request")
    settings = get_settings(request)

    try:
        token = extract_bearer_token(request.headers.get("authorization"))
    except AuthError:
        logger.warning("Rejecting request without bearer token")
        return JSONResponse(status_code=401, content=UNAUTHORIZED_BODY)

    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON payload: {exc}")
        return _invalid_request("Invalid JSON payload", "invalid_json")

    try:
        chat_request = ChatRequest.from_payload(payload)
    except InvalidRequestError as exc:
        logger.error(f"Invalid chat request: {exc.message}")
        return _invalid_request(exc.message, exc.code)

    model = chat_request.model or settings.model_name
    logger.info(f"Processing request for model {model}, stream={chat_request.stream}")

    try:
        upstream = await open_upstream_stream(
            settings, build_upstream_body(chat_request, settings), token
        )
    except UpstreamStatusError as exc:
        return JSONResponse(status_code=500, content={"error": exc.message})
    except httpx.HTTPError as exc:
        logger.error("Upstream request failed: %s", format_httpx_error(exc, settings.upstream_url, settings.timeout))
        return JSONResponse(status_code=500, content={"error": "Upstream request failed"})
    except Exception:
        logger.exception("Error opening upstream stream")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    try:
        if chat_request.stream:
            return await _stream_response(request, settings, upstream, model)
        return await _buffered_response(settings, upstream, model)
    except Exception:
        logger.exception(f"Error processing request for model {model}")
        await upstream.aclose()
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def _buffered_response(
    settings: Settings, upstream: UpstreamConnection, model: str
) -> Response:
    try:
        state = await collect_stream(upstream.aiter_bytes(), settings.output_variable)
    finally:
        await upstream.aclose()
    status_code, content = render_buffered_result(state, model)
    if status_code == 200:
        logger.info(f"Request for model {model} completed successfully")
    return JSONResponse(status_code=status_code, content=content)


async def _stream_response(
    request: Request, settings: Settings, upstream: UpstreamConnection, model: str
) -> Response:
    emitter = ChatCompletionStreamEmitter(
        model,
        output_variable=settings.output_variable,
        disconnect_checker=request.is_disconnected,
    )
    frames = _guarded_frames(emitter, upstream)

    # The status line goes out with the first frame, so read it first: an
    # upstream error before any content still becomes a 500.
    try:
        first_frame = await frames.__anext__()
    except StopAsyncIteration:
        return Response(status_code=200, media_type="text/event-stream")
    except Exception:
        await frames.aclose()
        raise

    status_code = 500 if emitter.failed else 200

    async def iterator() -> AsyncIterator[bytes]:
        try:
            yield first_frame
            async for frame in frames:
                yield frame
        finally:
            await frames.aclose()
            await upstream.aclose()

    return StreamingResponse(
        iterator(),
        status_code=status_code,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


async def _guarded_frames(
    emitter: ChatCompletionStreamEmitter, upstream: UpstreamConnection
) -> AsyncIterator[bytes]:
    """Emitter frames, ending with an error frame if the upstream read fails."""
    try:
        async for frame in emitter.adapt_stream(upstream.aiter_bytes()):
            yield frame
    except httpx.HTTPError as exc:
        logger.error(
            "Upstream stream failed: %s",
            format_httpx_error(exc, upstream.url),
        )
        if not emitter.closed:
            for frame in emitter.close_with_error("Upstream connection error"):
                yield frame
    finally:
        await upstream.aclose()
