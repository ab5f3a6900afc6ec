# ─────────────────────────────────────────────────────────────────────────────
# FastAPI Application Factory + Lifespan
# ─────────────────────────────────────────────────────────────────────────────
# Entrypoint: uvicorn listing_service.main:create_app --factory --port 3000
# The --factory flag tells uvicorn to call create_app() for the app instance.
# ─────────────────────────────────────────────────────────────────────────────

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from listing_service.auth import APIKeyMiddleware
from listing_service.config import Settings, get_settings
from listing_service.exceptions import register_exception_handlers
from listing_service.logging_config import configure_logging
from listing_service.middleware import BodySizeLimitMiddleware, RequestContextMiddleware
from listing_service.pipeline.gateway import ModelGateway
from listing_service.rate_limit import limiter
from listing_service.routes import generate, health, history, presets
from listing_service.services.orchestrator import GenerationOrchestrator
from listing_service.store.listing_store import create_store

logger = structlog.get_logger(__name__)


async def _rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 in the same ``{error, detail}`` shape as other errors."""
    logger.warning(
        "rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={"error": "RateLimited", "detail": f"Rate limit exceeded: {exc.detail}"},
    )


def _configure_otel(exporter_type: str) -> None:
    """Configure OpenTelemetry tracing.

    Supports "console" for dev. No-op if the exporter type is unknown.
    """
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    provider = TracerProvider()

    if exporter_type == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return

    from opentelemetry import trace

    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown lifecycle.

    The store, gateway and orchestrator are created here and stored in
    app.state for injection via Depends().
    """
    settings = app.state.settings

    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        _configure_otel(otel_exporter)

    store = create_store(settings.database_url, use_memory=settings.use_memory_store)
    await store.connect()

    gateway = ModelGateway(settings)
    if not gateway.is_configured:
        logger.warning("upstream_not_configured", reason="DEEPSEEK_API_KEY env var not set")

    app.state.listing_store = store
    app.state.gateway = gateway
    app.state.orchestrator = GenerationOrchestrator(settings, gateway, store)

    yield  # App is running, serving requests

    # Shutdown
    await gateway.close()
    await store.disconnect()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated origin string into a list.

    Returns ``["*"]`` if the input is empty (development mode).
    """
    if not allowed_origins.strip():
        return ["*"]
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory. Invoked by: uvicorn listing_service.main:create_app --factory

    ``settings`` defaults to the cached environment settings.
    """
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Listing Copy Service",
        description="Marketplace listing title + bullet generation and translation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── Attach rate limiter to app state (required by slowapi) ───────────────
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── Middleware stack ─────────────────────────────────────────────────────
    # Starlette applies middleware in reverse order of add_middleware calls.
    # Request order: CORS → BodySize → APIKey → RequestContext → route handler

    app.add_middleware(RequestContextMiddleware)

    api_key_value = settings.api_key.get_secret_value()
    if api_key_value:
        app.add_middleware(APIKeyMiddleware, api_key=api_key_value)
        logger.info("api_key_auth_enabled")
    else:
        logger.warning("api_key_auth_disabled", reason="API_KEY env var not set")

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_bytes)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID"],
    )

    # ── Exception handlers ───────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes ───────────────────────────────────────────────────────────────
    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, prefix="/api", tags=["generate"])
    app.include_router(history.router, prefix="/api", tags=["history"])
    app.include_router(presets.router, prefix="/api", tags=["presets"])

    return app
