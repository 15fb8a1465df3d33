"""Upstream request construction and the streaming connection to Dify."""

import json
import logging
from typing import Any, AsyncIterator, Optional, Sequence
from urllib.parse import urlparse

import httpx

from ..types.chat import ChatRequest, Message
from .config import BotType, Settings
from .exceptions import UpstreamStatusError

logger = logging.getLogger("dify2openai")

HISTORY_PREAMBLE = "here is our talk history:\n'''\n"
QUESTION_PREAMBLE = "\n'''\n\nhere is my question:\n"

# Per-host transports for in-process upstreams (tests, simulations)
_TRANSPORTS: dict[str, httpx.AsyncBaseTransport] = {}


def register_upstream_transport(host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Route requests for a host (netloc or URL) through the given transport."""
    if not host:
        raise ValueError("host is required")
    netloc = urlparse(host).netloc if "://" in host else host
    _TRANSPORTS[netloc.strip().lower()] = transport
    logger.debug("Registered upstream transport for host '%s'", netloc)


def clear_upstream_transports() -> None:
    _TRANSPORTS.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    host = urlparse(url).netloc
    if not host:
        return None
    return _TRANSPORTS.get(host.strip().lower())


def build_query(messages: Sequence[Message], bot_type: BotType) -> str:
    """Render the conversation into the single query string Dify accepts.

    Chat apps get the earlier turns as a quoted transcript followed by the
    last message; completion and workflow apps only see the last message.
    """
    last = messages[-1]
    if bot_type is BotType.CHAT:
        history = "\n".join(f"{message.role}: {message.content}" for message in messages[:-1])
        return f"{HISTORY_PREAMBLE}{history}{QUESTION_PREAMBLE}{last.content}"
    return last.content


def build_upstream_body(request: ChatRequest, settings: Settings) -> dict[str, Any]:
    """Build the Dify request body. The upstream is always asked to stream."""
    query = build_query(request.messages, settings.bot_type)
    body: dict[str, Any]
    if settings.input_variable:
        body = {"inputs": {settings.input_variable: query}}
    else:
        body = {"inputs": {}, "query": query}
    body.update(
        {
            "response_mode": "streaming",
            "conversation_id": "",
            "user": settings.user,
            "auto_generate_name": False,
        }
    )
    return body


def format_httpx_error(exc: Any, url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Produce a detailed description of an httpx error for logs."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    request = None
    if isinstance(exc, httpx.RequestError):
        try:
            request = exc.request
        except RuntimeError:
            # httpx raises when the error was created without a request
            request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException) and timeout is not None:
        parts.append(f"timeout={timeout}s")

    return " | ".join(parts)


class UpstreamConnection:
    """An open streaming response from the upstream plus its client."""

    def __init__(self, url: str, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self.url = url
        self._client = client
        self._response = response
        self.closed = False

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()

    async def aread(self) -> bytes:
        return await self._response.aread()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.debug(f"Closing upstream stream for {self.url}")
        await self._response.aclose()
        await self._client.aclose()


async def open_upstream_stream(
    settings: Settings, body: dict[str, Any], token: str
) -> UpstreamConnection:
    """POST the body to the upstream and return the open event stream.

    Raises:
        UpstreamStatusError: If the upstream answers with status >= 400.
        httpx.HTTPError: If the connection cannot be established.
    """
    url = settings.upstream_url
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {token}",
    }
    timeout = httpx.Timeout(
        connect=settings.timeout,
        read=settings.read_timeout,
        write=settings.timeout,
        pool=settings.timeout,
    )
    transport = get_upstream_transport(url)
    client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)
    try:
        request = client.build_request(
            "POST", url, headers=headers, content=json.dumps(body).encode("utf-8")
        )
        logger.debug(f"Sending streaming request to {url}")
        response = await client.send(request, stream=True)
    except Exception as exc:
        logger.error(f"Failed to send upstream request to {url}: {exc} (type: {exc.__class__.__name__})")
        await client.aclose()
        raise

    connection = UpstreamConnection(url, client, response)
    if response.status_code >= 400:
        data = await connection.aread()
        await connection.aclose()
        logger.warning(
            "Upstream %s returned error status %s: %s",
            url,
            response.status_code,
            data[:500].decode("utf-8", errors="replace"),
        )
        raise UpstreamStatusError(
            f"upstream returned status {response.status_code}",
            status_code=response.status_code,
            body=data,
        )

    logger.info(f"Upstream stream to {url} opened, status {response.status_code}")
    return connection
