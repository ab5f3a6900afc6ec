# ─────────────────────────────────────────────────────────────────────────────
# Model Gateway — OpenAI-compatible chat completions over httpx
# ─────────────────────────────────────────────────────────────────────────────
# The upstream wraps the model's own output inside a transport envelope, so
# a response is decoded in two separately-failable steps:
#   1. envelope  → MalformedEnvelope if the body is not a JSON object
#   2. content   → MalformedContent  if choices[0].message.content is not
# No retries: a failed call surfaces immediately.
# ─────────────────────────────────────────────────────────────────────────────


import json
import time
from typing import Any

import httpx
import structlog

from listing_service.config import Settings
from listing_service.exceptions import (
    MalformedContent,
    MalformedEnvelope,
    UpstreamError,
    UpstreamTimeoutError,
)
from listing_service.schemas import ListingResult

logger = structlog.get_logger(__name__)


def decode_envelope(body: str) -> dict[str, Any]:
    """Step 1: parse the outer transport body."""
    try:
        envelope = json.loads(body)
    except ValueError:
        raise MalformedEnvelope(body) from None
    if not isinstance(envelope, dict):
        raise MalformedEnvelope(body)
    return envelope


def extract_content(envelope: dict[str, Any]) -> str:
    """Pull ``choices[0].message.content``; a missing field reads as ``"{}"``."""
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        return "{}"
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not content:
        return "{}"
    return content if isinstance(content, str) else json.dumps(content)


def decode_content(content: str) -> dict[str, Any]:
    """Step 2: parse the model's generated JSON object."""
    try:
        parsed = json.loads(content)
    except ValueError:
        raise MalformedContent(content) from None
    if not isinstance(parsed, dict):
        raise MalformedContent(content)
    return parsed


def coerce_result(parsed: dict[str, Any]) -> ListingResult:
    """Shape coercion only; low-quality output is not an error."""
    title = parsed.get("title")
    bullets = parsed.get("bullets")
    return ListingResult(
        title=title if isinstance(title, str) else "",
        bullets=[b if isinstance(b, str) else str(b) for b in bullets]
        if isinstance(bullets, list)
        else [],
    )


class ModelGateway:
    """Sends chat messages to the upstream model and returns a ListingResult.

    Owns an ``httpx.AsyncClient``; pass ``client`` to share one (tests
    inject a client backed by ``httpx.MockTransport``).
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._base_url = settings.deepseek_api_base.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout_seconds)
        )

    @property
    def is_configured(self) -> bool:
        """Whether an upstream API key is available."""
        return bool(self._settings.deepseek_api_key.get_secret_value())

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def complete(self, model: str, messages: list[dict[str, str]]) -> ListingResult:
        """One chat-completions call → ListingResult.

        Raises:
            UpstreamError: transport failure, timeout or non-2xx status.
            MalformedEnvelope: response body is not a JSON object.
            MalformedContent: generated content is not a JSON object.
        """
        payload = {
            "model": model,
            "messages": messages,
            "response_format": {"type": "json_object"},
            "temperature": self._settings.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self._settings.deepseek_api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            response = await self._client.post(
                f"{self._base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=self._settings.upstream_timeout_seconds,
            )
        except httpx.TimeoutException:
            logger.warning(
                "upstream_timeout",
                model=model,
                timeout_s=self._settings.upstream_timeout_seconds,
            )
            raise UpstreamTimeoutError(self._settings.upstream_timeout_seconds) from None
        except httpx.HTTPError as e:
            logger.warning("upstream_transport_error", model=model, error=str(e))
            raise UpstreamError(f"Model endpoint unreachable: {e}") from e

        elapsed = int((time.perf_counter() - start) * 1000)
        body = response.text

        if not response.is_success:
            logger.warning(
                "upstream_error",
                model=model,
                status=response.status_code,
                time_ms=elapsed,
            )
            raise UpstreamError(
                "Model endpoint returned an error",
                upstream_status=response.status_code,
                raw_body=body,
            )

        envelope = decode_envelope(body)
        content = extract_content(envelope)
        result = coerce_result(decode_content(content))

        logger.info(
            "upstream_completed",
            model=model,
            time_ms=elapsed,
            bullets=len(result.bullets),
        )
        return result
