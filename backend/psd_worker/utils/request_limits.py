import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from psd_worker import config

logger = logging.getLogger(__name__)


class RequestTooLargeError(HTTPException):
    def __init__(self, max_bytes: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body exceeds {max_bytes} bytes",
        )


def too_large_response(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        content={"success": False, "error": detail},
    )


async def request_too_large_handler(request: Request, exc: RequestTooLargeError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.detail}")
    return too_large_response(exc.detail)


class RequestSizeLimitMiddleware:
    """
    Reject request bodies larger than MAX_REQUEST_BYTES.

    A declared Content-Length over the limit is refused before the body is
    read. Otherwise the received bytes are counted as the endpoint reads
    them, so chunked uploads are bounded as well.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        max_bytes = config.MAX_REQUEST_BYTES

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > max_bytes:
                response = too_large_response(RequestTooLargeError(max_bytes).detail)
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > max_bytes:
                    raise RequestTooLargeError(max_bytes)
            return message

        await self.app(scope, limited_receive, send)
