# ─────────────────────────────────────────────────────────────────────────────
# Attribute Validator — raw mapping → ListingRequest / TranslationRequest
# ─────────────────────────────────────────────────────────────────────────────
# Pure functions: no I/O. Every violated field is reported, not just the
# first, so a caller can fix a row in one pass.
# ─────────────────────────────────────────────────────────────────────────────


from collections.abc import Mapping
from typing import Any

import pydantic

from listing_service.config import Settings
from listing_service.exceptions import ValidationError
from listing_service.schemas import ListingRequest, TranslationRequest


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _issues_from(exc: pydantic.ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{field, message}`` issues."""
    issues = []
    for err in exc.errors():
        loc = err.get("loc") or ("body",)
        message = err.get("msg", "invalid value")
        # Messages from our own validators arrive as "Value error, ..."
        message = message.removeprefix("Value error, ")
        if err.get("type") == "missing":
            message = f"{loc[0]} is required"
        issues.append({"field": str(loc[0]), "message": message})
    return issues


def _require_mapping(raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError(
            [{"field": "body", "message": "expected an object of product attributes"}]
        )
    return raw


def validate_listing(raw: Any, settings: Settings) -> ListingRequest:
    """Validate one generation record, applying configured defaults.

    ``locale`` and ``model`` fall back to the configured defaults when
    absent, null or blank. Raises ValidationError on any violation.
    """
    data = dict(_require_mapping(raw))
    if _is_blank(data.get("locale")):
        data["locale"] = settings.default_locale
    if _is_blank(data.get("model")):
        data["model"] = settings.default_model

    try:
        return ListingRequest.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_issues_from(exc)) from None


def validate_translation(raw: Any, settings: Settings) -> TranslationRequest:
    """Validate a translation request.

    Stricter than generation: ``target_locale`` has no default, ``title``
    must be non-empty and ``bullets`` must hold exactly five entries.
    """
    data = dict(_require_mapping(raw))
    if _is_blank(data.get("model")):
        data["model"] = settings.default_model

    try:
        return TranslationRequest.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_issues_from(exc)) from None
