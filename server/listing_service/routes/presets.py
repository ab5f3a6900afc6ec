# ─────────────────────────────────────────────────────────────────────────────
# GET /api/presets — static category samples
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter

from listing_service.presets import list_presets
from listing_service.schemas import Preset

router = APIRouter()


@router.get("/presets", response_model=list[Preset])
async def presets() -> list[Preset]:
    return list_presets()
