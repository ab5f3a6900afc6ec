# ─────────────────────────────────────────────────────────────────────────────
# Prompt Templates — chat messages for listing generation and translation
# ─────────────────────────────────────────────────────────────────────────────
# Deterministic: identical requests produce byte-identical messages.
# No network or storage I/O happens here.
# ─────────────────────────────────────────────────────────────────────────────


import json

from listing_service.schemas import (
    BULLET_COUNT,
    IMPERIAL_LOCALES,
    ListingRequest,
    Locale,
    TranslationRequest,
)

Message = dict[str, str]

_OUTPUT_CONTRACT = (
    f'{{ "title": string, "bullets": string[{BULLET_COUNT}] }}'
)

_COMPLIANCE_RULE = (
    "Concise, factual, compliant (no medical, absolute-superlative, price "
    "or competitor claims)."
)


def get_unit_rule(locale: Locale) -> str:
    """Unit convention for a marketplace locale."""
    if locale in IMPERIAL_LOCALES:
        return "imperial units with metric in parentheses"
    return "metric units only"


def get_generation_system_prompt(locale: Locale) -> str:
    """System instruction for writing a new listing in ``locale``."""
    lines = [
        "You are an expert Amazon listing copywriter. "
        f"Output strictly JSON: {_OUTPUT_CONTRACT}.",
        "Rules:",
        f"- Locale: {locale.value}. Use the local writing style and "
        f"{get_unit_rule(locale)}.",
        "- Some fields may be missing; DO NOT fabricate. If a field is not "
        "provided, do not mention it.",
        f"- {_COMPLIANCE_RULE}",
        "- Title length and bullets follow marketplace best practices.",
        "Return pure JSON only.",
    ]
    return "\n".join(lines)


def get_translation_system_prompt(locale: Locale) -> str:
    """System instruction for localizing existing copy into ``locale``."""
    lines = [
        "You are a professional Amazon listing localizer. "
        f"Output JSON: {_OUTPUT_CONTRACT}.",
        f"- Target: {locale.value}",
        f"- Preserve facts and structure; adapt to {get_unit_rule(locale)}.",
        f"- {_COMPLIANCE_RULE}",
        "Return JSON only.",
    ]
    return "\n".join(lines)


def _dumps(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def build_generation_messages(request: ListingRequest) -> list[Message]:
    """System + user messages for generating a listing.

    The user payload carries only attributes that have a value; unknown
    attributes are left out entirely rather than sent as empty or null.
    """
    return [
        {"role": "system", "content": get_generation_system_prompt(request.locale)},
        {"role": "user", "content": _dumps(request.present_attributes())},
    ]


def build_translation_messages(request: TranslationRequest) -> list[Message]:
    """System + user messages for translating existing copy."""
    payload = {
        "target": request.target_locale.value,
        "title": request.title,
        "bullets": list(request.bullets),
    }
    return [
        {"role": "system", "content": get_translation_system_prompt(request.target_locale)},
        {"role": "user", "content": _dumps(payload)},
    ]
