# ─────────────────────────────────────────────────────────────────────────────
# Tests — Generation Orchestrator
# ─────────────────────────────────────────────────────────────────────────────

import asyncio
import json

import httpx
import pytest

from conftest import SAMPLE_BULLETS, FakeUpstream, completion_response, listing_content
from listing_service.config import Settings
from listing_service.exceptions import (
    MalformedContent,
    StorageError,
    UpstreamError,
    ValidationError,
)
from listing_service.pipeline.gateway import ModelGateway
from listing_service.schemas import ListingResult
from listing_service.services.orchestrator import GenerationOrchestrator
from listing_service.store.listing_store import InMemoryListingStore

FIVE = ["1", "2", "3", "4", "5"]


def _user_payload(upstream: FakeUpstream, index: int = -1) -> dict:
    return json.loads(upstream.payload(index)["messages"][1]["content"])


class TestGenerate:
    """Tests for GenerationOrchestrator.generate()."""

    async def test_water_bottle_end_to_end(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        result = await orchestrator.generate({"name": "Water Bottle"}, ip="10.0.0.1")

        assert upstream.calls == 1
        assert _user_payload(upstream) == {"name": "Water Bottle"}
        assert upstream.payload()["model"] == "deepseek-chat"

        assert result.title == "Insulated Water Bottle"
        assert result.bullets == SAMPLE_BULLETS

        (record,) = await memory_store.list_recent(10)
        assert record.name == "Water Bottle"
        assert record.locale.value == "US_en"
        assert record.ip == "10.0.0.1"
        assert record.title == result.title
        assert record.bullets == result.bullets
        assert record.created_at is not None

    async def test_blank_name_makes_no_call_and_persists_nothing(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        with pytest.raises(ValidationError):
            await orchestrator.generate({"name": "  ", "color": "Red"})
        assert upstream.calls == 0
        assert len(memory_store) == 0

    async def test_malformed_content_persists_nothing(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        upstream.responder = lambda request: completion_response("Title: Water Bottle")
        with pytest.raises(MalformedContent):
            await orchestrator.generate({"name": "Water Bottle"})
        assert len(memory_store) == 0

    async def test_upstream_error_persists_nothing(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        upstream.responder = lambda request: httpx.Response(401, text="bad key")
        with pytest.raises(UpstreamError):
            await orchestrator.generate({"name": "Water Bottle"})
        assert len(memory_store) == 0

    async def test_bullet_count_passes_through(
        self, orchestrator: GenerationOrchestrator, upstream: FakeUpstream
    ):
        upstream.responder = lambda request: completion_response(
            listing_content(bullets=["a", "b", "c", "d", "e", "f"])
        )
        result = await orchestrator.generate({"name": "Mug"})
        assert len(result.bullets) == 6

    async def test_storage_failure_surfaces(self, test_settings: Settings, gateway: ModelGateway):
        class BrokenStore(InMemoryListingStore):
            async def append(self, record):
                raise StorageError("append", "disk full")

        orchestrator = GenerationOrchestrator(test_settings, gateway, BrokenStore())
        with pytest.raises(StorageError):
            await orchestrator.generate({"name": "Mug"})


class TestTranslate:
    """Tests for GenerationOrchestrator.translate()."""

    async def test_translation_not_persisted(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        result = await orchestrator.translate(
            {"target_locale": "DE_de", "title": "Bottle", "bullets": FIVE}
        )
        assert result.title == "Insulated Water Bottle"
        assert _user_payload(upstream) == {"target": "DE_de", "title": "Bottle", "bullets": FIVE}
        assert len(memory_store) == 0

    async def test_wrong_bullet_count_rejected_before_call(
        self, orchestrator: GenerationOrchestrator, upstream: FakeUpstream
    ):
        with pytest.raises(ValidationError):
            await orchestrator.translate(
                {"target_locale": "DE_de", "title": "Bottle", "bullets": FIVE[:4]}
            )
        assert upstream.calls == 0


class TestGenerateBatch:
    """Tests for GenerationOrchestrator.generate_batch()."""

    async def test_middle_item_fails_validation(
        self,
        orchestrator: GenerationOrchestrator,
        upstream: FakeUpstream,
        memory_store: InMemoryListingStore,
    ):
        items = [{"name": "Mug"}, {"color": "Red"}, {"name": "Kettle"}]
        outcome = await orchestrator.generate_batch(items)

        assert outcome.count == 3
        assert [r.ok for r in outcome.results] == [True, False, True]
        assert outcome.succeeded == 2
        assert outcome.failed == 1
        assert outcome.results[1].error.kind == "ValidationError"
        assert outcome.results[1].input == {"color": "Red"}
        assert outcome.results[0].input["name"] == "Mug"
        assert outcome.results[2].input["name"] == "Kettle"
        assert upstream.calls == 2
        assert len(memory_store) == 2

    async def test_upstream_failure_isolated(
        self, orchestrator: GenerationOrchestrator, upstream: FakeUpstream
    ):
        def _respond(request: httpx.Request) -> httpx.Response:
            name = json.loads(json.loads(request.content)["messages"][1]["content"])["name"]
            if name == "Bad":
                return completion_response("not json")
            return completion_response(listing_content(title=name))

        upstream.responder = _respond
        items = [{"name": "A"}, {"name": "Bad"}, {"name": "C"}, {"name": "D"}]
        outcome = await orchestrator.generate_batch(items)

        assert [r.ok for r in outcome.results] == [True, False, True, True]
        assert outcome.results[1].error.kind == "MalformedContent"
        assert [r.output.title for r in outcome.results if r.ok] == ["A", "C", "D"]

    @pytest.mark.parametrize("size", [1, 3, 10])
    async def test_length_always_matches_input(
        self, size: int, orchestrator: GenerationOrchestrator
    ):
        items = [{"name": f"Item {i}"} if i % 3 else {"name": ""} for i in range(size)]
        outcome = await orchestrator.generate_batch(items)
        assert outcome.count == size
        assert len(outcome.results) == size
        for item, result in zip(items, outcome.results):
            if result.ok:
                assert result.input["name"] == item["name"]
            else:
                assert result.input == item

    async def test_sequential_submission_order(
        self, orchestrator: GenerationOrchestrator, upstream: FakeUpstream
    ):
        await orchestrator.generate_batch([{"name": n} for n in ("A", "B", "C")])
        assert [_user_payload(upstream, i)["name"] for i in range(3)] == ["A", "B", "C"]

    @pytest.mark.parametrize("items", [None, [], {"name": "Mug"}, "Mug"])
    async def test_structurally_invalid_body(
        self, items, orchestrator: GenerationOrchestrator, upstream: FakeUpstream
    ):
        with pytest.raises(ValidationError):
            await orchestrator.generate_batch(items)
        assert upstream.calls == 0

    async def test_oversized_batch_rejected(
        self, test_settings: Settings, gateway: ModelGateway, memory_store: InMemoryListingStore
    ):
        settings = test_settings.model_copy(update={"max_batch_items": 2})
        orchestrator = GenerationOrchestrator(settings, gateway, memory_store)
        with pytest.raises(ValidationError):
            await orchestrator.generate_batch([{"name": "a"}] * 3)


class _SlowGateway:
    """Completes later items first to exercise index-aligned results."""

    def __init__(self) -> None:
        self.in_flight = 0
        self.peak = 0

    async def complete(self, model, messages):
        name = json.loads(messages[1]["content"])["name"]
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01 * (5 - int(name)))
        self.in_flight -= 1
        return ListingResult(title=name, bullets=[])


async def test_concurrent_batch_keeps_order_and_cap(test_settings: Settings):
    settings = test_settings.model_copy(update={"batch_concurrency": 2})
    gateway = _SlowGateway()
    orchestrator = GenerationOrchestrator(settings, gateway, InMemoryListingStore())

    outcome = await orchestrator.generate_batch([{"name": str(i)} for i in range(5)])

    assert [r.output.title for r in outcome.results] == ["0", "1", "2", "3", "4"]
    assert gateway.peak <= 2
