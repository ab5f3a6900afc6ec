# ─────────────────────────────────────────────────────────────────────────────
# Generation Orchestrator — core listing business logic
# ─────────────────────────────────────────────────────────────────────────────
# Endpoints delegate here. This owns:
#   - Validation → prompt building → model call → persistence
#   - Translation (never persisted)
#   - Batch fan-out with per-item failure isolation
# Store and gateway are injected; there is no module-level state.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import structlog
from opentelemetry import trace

from listing_service.config import Settings
from listing_service.exceptions import ListingServiceError, ValidationError
from listing_service.pipeline.gateway import ModelGateway
from listing_service.pipeline.prompt_templates import (
    build_generation_messages,
    build_translation_messages,
)
from listing_service.pipeline.validator import validate_listing, validate_translation
from listing_service.schemas import (
    BatchItemOutcome,
    BatchOutcome,
    ErrorInfo,
    GenerationRecord,
    ListingRequest,
    ListingResult,
)
from listing_service.store.listing_store import ListingStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class GenerationOrchestrator:
    """Runs Validator → PromptBuilder → Gateway → Store for each record.

    Validation and prompt building are synchronous and pure; the gateway
    call and the store write are the only suspension points.
    """

    def __init__(self, settings: Settings, gateway: ModelGateway, store: ListingStore) -> None:
        self._settings = settings
        self._gateway = gateway
        self._store = store

    # ── Single record ────────────────────────────────────────────────────────

    async def generate(self, raw: Any, ip: str | None = None) -> ListingResult:
        """Generate copy for one raw record and persist it.

        Any stage failure propagates as its specific error; nothing is
        persisted unless the model call succeeded.
        """
        with tracer.start_as_current_span("generate") as span:
            request = validate_listing(raw, self._settings)
            span.set_attribute("locale", request.locale.value)
            span.set_attribute("model", request.model.value)
            return await self._generate_validated(request, ip)

    async def _generate_validated(self, request: ListingRequest, ip: str | None) -> ListingResult:
        start = time.perf_counter()
        messages = build_generation_messages(request)

        result = await self._gateway.complete(request.model.value, messages)

        record = GenerationRecord.from_generation(
            request, result, created_at=datetime.now(timezone.utc), ip=ip
        )
        with tracer.start_as_current_span("store_append"):
            stored = await self._store.append(record)

        logger.info(
            "listing_generated",
            record_id=stored.id,
            locale=request.locale.value,
            model=request.model.value,
            attributes=len(request.present_attributes()),
            bullets=len(result.bullets),
            time_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    async def translate(self, raw: Any) -> ListingResult:
        """Translate existing copy. Results are not persisted."""
        with tracer.start_as_current_span("translate") as span:
            request = validate_translation(raw, self._settings)
            span.set_attribute("target_locale", request.target_locale.value)

            messages = build_translation_messages(request)
            result = await self._gateway.complete(request.model.value, messages)

            logger.info(
                "listing_translated",
                target_locale=request.target_locale.value,
                bullets=len(result.bullets),
            )
            return result

    # ── Batch ────────────────────────────────────────────────────────────────

    async def generate_batch(self, items: Any, ip: str | None = None) -> BatchOutcome:
        """Generate every item, isolating failures per item.

        Only a structurally invalid body (not a list, empty, or over the
        configured size) raises. Results are index-aligned with ``items``
        whatever order the items complete in.
        """
        if not isinstance(items, list) or not items:
            raise ValidationError(
                [{"field": "items", "message": "items must be a non-empty array"}]
            )
        if len(items) > self._settings.max_batch_items:
            raise ValidationError(
                [
                    {
                        "field": "items",
                        "message": f"at most {self._settings.max_batch_items} items per batch",
                    }
                ]
            )

        with tracer.start_as_current_span("generate_batch") as span:
            span.set_attribute("items", len(items))
            start = time.perf_counter()

            results: list[BatchItemOutcome | None] = [None] * len(items)
            semaphore = asyncio.Semaphore(max(1, self._settings.batch_concurrency))

            async def _run(index: int, item: Any) -> None:
                async with semaphore:
                    results[index] = await self._run_item(index, item, ip)

            await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))

            outcomes = [r for r in results if r is not None]
            succeeded = sum(1 for r in outcomes if r.ok)
            logger.info(
                "batch_completed",
                count=len(outcomes),
                succeeded=succeeded,
                failed=len(outcomes) - succeeded,
                time_ms=int((time.perf_counter() - start) * 1000),
            )
            return BatchOutcome(
                count=len(outcomes),
                succeeded=succeeded,
                failed=len(outcomes) - succeeded,
                results=outcomes,
            )

    async def _run_item(self, index: int, item: Any, ip: str | None) -> BatchItemOutcome:
        """Full single-record pipeline; every failure lands in the slot."""
        try:
            request = validate_listing(item, self._settings)
            output = await self._generate_validated(request, ip)
        except ListingServiceError as e:
            logger.warning("batch_item_failed", index=index, kind=e.kind, error=e.message)
            return BatchItemOutcome(
                ok=False, input=item, error=ErrorInfo(kind=e.kind, detail=e.message)
            )
        except Exception as e:
            logger.exception("batch_item_crashed", index=index)
            return BatchItemOutcome(
                ok=False, input=item, error=ErrorInfo(kind="ServerError", detail=str(e))
            )
        return BatchItemOutcome(ok=True, input=request.model_dump(mode="json"), output=output)
