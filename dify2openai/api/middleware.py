"""HTTP middleware: permissive CORS and request logging."""

import logging

from fastapi import Request, Response

logger = logging.getLogger("dify2openai")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": (
        "DNT,User-Agent,X-Requested-With,If-Modified-Since,Cache-Control,"
        "Content-Type,Range,Authorization"
    ),
    "Access-Control-Max-Age": "86400",
}


async def cors_middleware(request: Request, call_next) -> Response:
    """Attach CORS headers everywhere; answer preflight requests directly."""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


async def request_logging_middleware(request: Request, call_next) -> Response:
    logger.info("Request Method: %s", request.method)
    logger.info("Request Path: %s", request.url.path)
    return await call_next(request)
