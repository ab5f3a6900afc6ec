# ─────────────────────────────────────────────────────────────────────────────
# Request Middleware — request id + access log, body size guard
# ─────────────────────────────────────────────────────────────────────────────


import time
import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id into structlog context and log each request.

    An incoming ``X-Request-ID`` is reused; otherwise one is generated.
    The id is echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = int((time.perf_counter() - start) * 1000)

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            time_ms=elapsed,
        )
        response.headers["X-Request-ID"] = request_id
        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the limit."""

    def __init__(self, app: Any, *, max_bytes: int) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_bytes:
            logger.warning(
                "request_too_large",
                path=request.url.path,
                content_length=int(declared),
                limit=self._max_bytes,
            )
            return JSONResponse(
                status_code=413,
                content={
                    "error": "PayloadTooLarge",
                    "detail": f"Request body exceeds {self._max_bytes} bytes",
                },
            )
        return await call_next(request)
