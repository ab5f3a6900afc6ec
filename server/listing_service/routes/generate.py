# ─────────────────────────────────────────────────────────────────────────────
# POST /api/generate, /api/generate-batch, /api/translate (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# Bodies are taken as raw JSON: the orchestrator's validator owns the schema
# so every violated field is reported in one 400 response.
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from listing_service.dependencies import get_client_ip, get_orchestrator
from listing_service.rate_limit import api_rate_limit, limiter
from listing_service.schemas import BatchOutcome, ListingResult
from listing_service.services.orchestrator import GenerationOrchestrator

router = APIRouter()


@router.post("/generate", response_model=ListingResult)
@limiter.limit(api_rate_limit)
async def generate(
    request: Request,
    body: Any = Body(None),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> ListingResult:
    """Generate a title and five bullets for one product record.

    Validation, model call and persistence live in the orchestrator.
    This endpoint is just wiring.
    """
    return await orchestrator.generate(body, ip=get_client_ip(request))


@router.post("/generate-batch", response_model=BatchOutcome)
@limiter.limit(api_rate_limit)
async def generate_batch(
    request: Request,
    body: Any = Body(None),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> BatchOutcome:
    """Generate many records. Always 200 unless the body itself is invalid.

    Accepts ``{"items": [...]}`` or a bare JSON array.
    """
    items = body.get("items") if isinstance(body, dict) else body
    return await orchestrator.generate_batch(items, ip=get_client_ip(request))


@router.post("/translate", response_model=ListingResult)
@limiter.limit(api_rate_limit)
async def translate(
    request: Request,
    body: Any = Body(None),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> ListingResult:
    """Localize an existing title + five bullets into ``target_locale``."""
    return await orchestrator.translate(body)
