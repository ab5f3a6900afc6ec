# ─────────────────────────────────────────────────────────────────────────────
# GET /api/history — most recent generations first
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request

from listing_service.dependencies import get_store
from listing_service.rate_limit import api_rate_limit, limiter
from listing_service.schemas import GenerationRecord
from listing_service.store.listing_store import MAX_HISTORY_LIMIT, ListingStore

router = APIRouter()

DEFAULT_HISTORY_LIMIT = 10


def clamp_limit(limit: int) -> int:
    """Bound a caller-supplied ``limit`` to ``[1, MAX_HISTORY_LIMIT]``."""
    return max(1, min(MAX_HISTORY_LIMIT, int(limit)))


@router.get("/history", response_model=list[GenerationRecord])
@limiter.limit(api_rate_limit)
async def history(
    request: Request,
    limit: int = DEFAULT_HISTORY_LIMIT,
    store: ListingStore = Depends(get_store),
) -> list[GenerationRecord]:
    """Recent generation records. ``limit`` is clamped to [1, 50]."""
    return await store.list_recent(clamp_limit(limit))
