# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)

# Upper bound on any upstream excerpt that ends up in an error detail.
EXCERPT_LIMIT = 200


def excerpt(text: str, limit: int = EXCERPT_LIMIT) -> str:
    """Truncate diagnostic text so error messages stay bounded."""
    return text if len(text) <= limit else text[:limit]


# ── Exception hierarchy ──────────────────────────────────────────────────────


class ListingServiceError(Exception):
    """Base exception for all listing pipeline errors."""

    kind = "ServerError"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        """Machine-readable kind plus human detail."""
        return {"error": self.kind, "detail": self.message}


class ValidationError(ListingServiceError):
    """Raised when caller input violates the request schema.

    ``issues`` lists every violated field, not just the first one.
    """

    kind = "ValidationError"

    def __init__(self, issues: list[dict[str, str]]):
        self.issues = issues
        detail = "; ".join(f"{i['field']}: {i['message']}" for i in issues)
        super().__init__(detail or "invalid request", status_code=400)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "issues": self.issues}


class UpstreamError(ListingServiceError):
    """Raised when the model endpoint fails at the transport or HTTP level.

    The full upstream body is kept on ``raw_body`` for diagnostics; only a
    truncated excerpt goes into the message.
    """

    kind = "UpstreamError"

    def __init__(
        self,
        reason: str,
        upstream_status: int | None = None,
        raw_body: str = "",
        status_code: int = 502,
    ):
        self.upstream_status = upstream_status
        self.raw_body = raw_body
        message = reason
        if upstream_status is not None:
            message = f"{reason} (status {upstream_status}): {excerpt(raw_body)}"
        super().__init__(message, status_code=status_code)


class UpstreamTimeoutError(UpstreamError):
    """Raised when the model endpoint does not answer within the timeout."""

    def __init__(self, timeout_s: float):
        super().__init__(
            f"Model endpoint timed out after {timeout_s}s", status_code=504
        )


class MalformedEnvelope(ListingServiceError):
    """The transport succeeded but the outer response body is not JSON."""

    kind = "MalformedEnvelope"

    def __init__(self, body: str):
        super().__init__(
            f"Upstream response is not valid JSON: {excerpt(body)}",
            status_code=502,
        )


class MalformedContent(ListingServiceError):
    """The envelope parsed but the generated content is not a JSON object."""

    kind = "MalformedContent"

    def __init__(self, content: str):
        super().__init__(
            f"Model content is not a JSON object: {excerpt(content)}",
            status_code=502,
        )


class ServerError(ListingServiceError):
    """Unexpected internal fault."""

    kind = "ServerError"


class StorageError(ServerError):
    """Raised when persisting or reading generation records fails."""

    kind = "StorageError"

    def __init__(self, operation: str, reason: str):
        super().__init__(f"Storage {operation} failed: {reason}", status_code=500)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise ListingServiceError subclasses; these handlers catch them
    and return structured JSON, with no inline try/except in endpoints.
    """

    @app.exception_handler(ListingServiceError)
    async def listing_error_handler(
        request: Request, exc: ListingServiceError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("listing_error", error=exc.message, kind=exc.kind, exc_info=exc)
        else:
            logger.info("listing_rejected", error=exc.message, kind=exc.kind)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        issues = []
        for err in exc.errors():
            # loc looks like ("body", 12) for bad JSON or ("query", "limit")
            parts = [
                str(p)
                for p in err.get("loc", ())
                if not isinstance(p, int) and p not in ("body", "query")
            ]
            issues.append(
                {"field": ".".join(parts) or "body", "message": err.get("msg", "invalid")}
            )
        return JSONResponse(status_code=400, content=ValidationError(issues).to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "ServerError", "detail": "Internal server error"},
        )
