# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from listing_service.pipeline.gateway import ModelGateway
from listing_service.services.orchestrator import GenerationOrchestrator
from listing_service.store.listing_store import ListingStore


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Inject GenerationOrchestrator into endpoints via Depends()."""
    return request.app.state.orchestrator


def get_store(request: Request) -> ListingStore:
    """Inject the ListingStore into endpoints via Depends()."""
    return request.app.state.listing_store


def get_gateway(request: Request) -> ModelGateway:
    """Inject ModelGateway into endpoints via Depends()."""
    return request.app.state.gateway


def get_client_ip(request: Request) -> str | None:
    """Originating client address, if the transport exposes one."""
    return request.client.host if request.client else None
