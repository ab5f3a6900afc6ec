# ─────────────────────────────────────────────────────────────────────────────
# Schemas — request / response / record models (Pydantic v2)
# ─────────────────────────────────────────────────────────────────────────────


from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Locale(str, Enum):
    """Marketplace + language pairing that governs style and units."""

    US_EN = "US_en"
    UK_EN = "UK_en"
    DE_DE = "DE_de"
    JP_JA = "JP_ja"
    CN_ZH = "CN_zh"


# Imperial units with metric in parentheses; every other locale is metric-only.
IMPERIAL_LOCALES: frozenset[Locale] = frozenset({Locale.US_EN, Locale.UK_EN})


class ModelName(str, Enum):
    """Supported upstream chat models."""

    DEEPSEEK_CHAT = "deepseek-chat"
    DEEPSEEK_REASONER = "deepseek-reasoner"


# Optional product attributes, in prompt order.
OPTIONAL_FIELDS: tuple[str, ...] = (
    "node",
    "color",
    "size_or_volume",
    "capacity",
    "weight",
    "material",
    "brand",
)

BULLET_COUNT = 5


def _coerce_text(value: Any) -> str:
    """Absent/null → "", scalars → trimmed string, containers rejected."""
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple, set)):
        raise ValueError("must be a string")
    return str(value).strip()


# ── Inputs ───────────────────────────────────────────────────────────────────


class ListingRequest(BaseModel):
    """A validated product-attribute record.

    Optional attributes are always strings: ``""`` means the attribute is
    unknown and must be left out of the prompt.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", protected_namespaces=())

    locale: Locale
    model: ModelName
    name: str
    node: str = ""
    color: str = ""
    size_or_volume: str = ""
    capacity: str = ""
    weight: str = ""
    material: str = ""
    brand: str = ""

    @field_validator("name", *OPTIONAL_FIELDS, mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("name is required")
        return value

    def present_attributes(self) -> dict[str, str]:
        """Non-empty attributes only, ``name`` first."""
        attrs = {"name": self.name}
        for field in OPTIONAL_FIELDS:
            value = getattr(self, field)
            if value:
                attrs[field] = value
        return attrs


class TranslationRequest(BaseModel):
    """Already-generated copy to localize into ``target_locale``."""

    model_config = ConfigDict(frozen=True, extra="ignore", protected_namespaces=())

    target_locale: Locale
    model: ModelName
    title: str
    bullets: list[str]

    @field_validator("title", mode="before")
    @classmethod
    def _normalize_title(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("title is required")
        return value

    @field_validator("bullets", mode="before")
    @classmethod
    def _bullets_exactly_five(cls, value: Any) -> list[str]:
        if not isinstance(value, list) or len(value) != BULLET_COUNT:
            raise ValueError(f"bullets must contain exactly {BULLET_COUNT} entries")
        return [_coerce_text(v) for v in value]


# ── Outputs ──────────────────────────────────────────────────────────────────


class ListingResult(BaseModel):
    """Generated or translated copy. ``bullets`` is passed through as-is."""

    title: str = ""
    bullets: list[str] = Field(default_factory=list)


class GenerationRecord(BaseModel):
    """One persisted successful generation. Immutable once written."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: int | None = None
    created_at: datetime
    ip: str | None = None
    locale: Locale
    model: ModelName
    name: str
    node: str = ""
    color: str = ""
    size_or_volume: str = ""
    capacity: str = ""
    weight: str = ""
    material: str = ""
    brand: str = ""
    title: str
    bullets: list[str]

    @classmethod
    def from_generation(
        cls,
        request: ListingRequest,
        result: ListingResult,
        created_at: datetime,
        ip: str | None = None,
    ) -> "GenerationRecord":
        return cls(
            created_at=created_at,
            ip=ip,
            **request.model_dump(),
            title=result.title,
            bullets=list(result.bullets),
        )


class ErrorInfo(BaseModel):
    """Machine-readable error kind plus a human detail string."""

    kind: str
    detail: str


class BatchItemOutcome(BaseModel):
    """Result slot for one batch item: either ``output`` or ``error`` is set."""

    ok: bool
    input: Any = None
    output: ListingResult | None = None
    error: ErrorInfo | None = None


class BatchOutcome(BaseModel):
    """Index-aligned batch results; ``len(results)`` equals the input length."""

    count: int
    succeeded: int
    failed: int
    results: list[BatchItemOutcome]


class Preset(BaseModel):
    """Static category sample used to prefill a new request."""

    key: str
    name: str
    sample: dict[str, str]


# ── Health ───────────────────────────────────────────────────────────────────


class LivenessResponse(BaseModel):
    status: str
    time: datetime


class ReadinessResponse(BaseModel):
    status: str
    store_connected: bool
    upstream_configured: bool
