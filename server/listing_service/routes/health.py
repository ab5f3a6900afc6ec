# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness and readiness
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness probe. Returns 200 always, no I/O.
#   /health/ready  → Readiness. 503 until the store is connected and an
#                    upstream API key is configured.
# ─────────────────────────────────────────────────────────────────────────────

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from listing_service.dependencies import get_gateway, get_store
from listing_service.pipeline.gateway import ModelGateway
from listing_service.schemas import LivenessResponse, ReadinessResponse
from listing_service.store.listing_store import ListingStore

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe: is the process alive?"""
    return LivenessResponse(status="ok", time=datetime.now(timezone.utc))


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(
    store: ListingStore = Depends(get_store),
    gateway: ModelGateway = Depends(get_gateway),
) -> JSONResponse:
    """Readiness probe: can this instance serve generation traffic?"""
    ready = store.is_connected and gateway.is_configured

    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        store_connected=store.is_connected,
        upstream_configured=gateway.is_configured,
    )

    return JSONResponse(
        status_code=200 if ready else 503,
        content=response.model_dump(),
    )
