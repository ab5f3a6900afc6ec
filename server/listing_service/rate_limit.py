# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiting — slowapi limiter shared by all /api routes
# ─────────────────────────────────────────────────────────────────────────────
# Keyed by client address. The limit string is read from settings on each
# request so RATE_LIMIT can be tuned without code changes.
# ─────────────────────────────────────────────────────────────────────────────


from slowapi import Limiter
from slowapi.util import get_remote_address

from listing_service.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def api_rate_limit() -> str:
    """Per-client limit for /api routes, e.g. ``"30/minute"``."""
    return get_settings().rate_limit
