# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from listing_service.schemas import Locale, ModelName


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    # ── Upstream model endpoint ──────────────────────────────────────────────
    deepseek_api_base: str = "https://api.deepseek.com/v1"
    deepseek_api_key: SecretStr = SecretStr("")
    temperature: float = 0.4
    upstream_timeout_seconds: float = 60.0

    # ── Generation defaults ──────────────────────────────────────────────────
    default_locale: Locale = Locale.US_EN
    default_model: ModelName = ModelName.DEEPSEEK_CHAT

    # ── Storage ──────────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./listings.db"
    use_memory_store: bool = False

    # ── Limits ───────────────────────────────────────────────────────────────
    max_batch_items: int = 100
    batch_concurrency: int = 1  # 1 = strictly sequential
    max_request_bytes: int = 1_048_576
    rate_limit: str = "30/minute"
    rate_limit_enabled: bool = True

    # ── HTTP ─────────────────────────────────────────────────────────────────
    allowed_origins: str = ""
    api_key: SecretStr = SecretStr("")

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
