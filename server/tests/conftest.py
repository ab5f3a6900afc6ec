# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────
# The upstream model endpoint is faked with httpx.MockTransport; the store
# is in-memory unless a test asks for SQLite.
# ─────────────────────────────────────────────────────────────────────────────


import json
import os
from collections.abc import Callable

import httpx
import pytest

# Set env BEFORE importing app modules
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["USE_MEMORY_STORE"] = "true"
os.environ["LOG_JSON"] = "false"
os.environ["API_KEY"] = ""
os.environ["DEEPSEEK_API_KEY"] = "test-upstream-key"

from listing_service.config import Settings  # noqa: E402
from listing_service.pipeline.gateway import ModelGateway  # noqa: E402
from listing_service.services.orchestrator import GenerationOrchestrator  # noqa: E402
from listing_service.store.listing_store import InMemoryListingStore  # noqa: E402

UPSTREAM_BASE = "https://upstream.test/v1"

SAMPLE_BULLETS = [
    "Keeps drinks cold for 24 hours",
    "Leak-proof lid for bags and backpacks",
    "BPA-free stainless steel body",
    "Fits standard cup holders",
    "Easy to clean wide mouth",
]


def completion_response(content: str, status_code: int = 200) -> httpx.Response:
    """Chat-completions envelope carrying ``content`` as the model output."""
    envelope = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }
    return httpx.Response(status_code, json=envelope)


def listing_content(title: str = "Insulated Water Bottle", bullets: list[str] | None = None) -> str:
    return json.dumps({"title": title, "bullets": SAMPLE_BULLETS if bullets is None else bullets})


class FakeUpstream:
    """Records every outbound request and answers via ``responder``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: completion_response(listing_content())
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def payload(self, index: int = -1) -> dict:
        """JSON body of a recorded request."""
        return json.loads(self.requests[index].content)


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing: fake upstream, memory store."""
    return Settings(
        deepseek_api_base=UPSTREAM_BASE,
        deepseek_api_key="test-upstream-key",
        use_memory_store=True,
        rate_limit_enabled=False,
        log_json=False,
        log_level="DEBUG",
        upstream_timeout_seconds=5,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def gateway(test_settings: Settings, upstream: FakeUpstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    gw = ModelGateway(test_settings, client=client)
    yield gw
    await client.aclose()


@pytest.fixture
def memory_store() -> InMemoryListingStore:
    return InMemoryListingStore()


@pytest.fixture
def orchestrator(
    test_settings: Settings, gateway: ModelGateway, memory_store: InMemoryListingStore
) -> GenerationOrchestrator:
    return GenerationOrchestrator(test_settings, gateway, memory_store)
