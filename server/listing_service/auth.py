# ─────────────────────────────────────────────────────────────────────────────
# Inbound API Key Gate
# ─────────────────────────────────────────────────────────────────────────────
# Callers of /api/* must send X-API-Key when API_KEY is set. Health probes
# and CORS preflights pass through. Unrelated to the upstream model key.
# ─────────────────────────────────────────────────────────────────────────────


import secrets
from collections.abc import Iterable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "x-api-key"
PUBLIC_PATHS: frozenset[str] = frozenset({"/health", "/health/ready"})


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Answer 401 ``{error, detail}`` unless the caller presents ``api_key``."""

    def __init__(
        self, app: Any, *, api_key: str, public_paths: Iterable[str] = PUBLIC_PATHS
    ) -> None:
        super().__init__(app)
        self._expected = api_key.encode()
        self._public_paths = frozenset(public_paths)

    def _needs_key(self, request: Request) -> bool:
        return request.method != "OPTIONS" and request.url.path not in self._public_paths

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._needs_key(request):
            presented = request.headers.get(API_KEY_HEADER, "").encode()
            if not secrets.compare_digest(presented, self._expected):
                logger.warning(
                    "caller_rejected",
                    path=request.url.path,
                    key_present=bool(presented),
                )
                return JSONResponse(
                    status_code=401,
                    content={"error": "Unauthorized", "detail": "Invalid or missing API key"},
                )
        return await call_next(request)
