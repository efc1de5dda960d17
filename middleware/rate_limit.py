# middleware/rate_limit.py
"""
Rate limiting configuration using slowapi.

Usage in route files:
    from middleware.rate_limit import limiter, QUOTE_LIMIT

    @router.post("/quotes")
    @limiter.limit(QUOTE_LIMIT)
    async def my_endpoint(request: Request):
        ...
"""
import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from config.settings import get_settings
from services.current_user import USER_HEADER

logger = logging.getLogger(__name__)


def _get_rate_limit_key(request: Request) -> str:
    """Per-user bucket when the caller is identified, client IP otherwise."""
    user_id = (request.headers.get(USER_HEADER) or "").strip()
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


_settings = get_settings()

# ─── Presets ───────────────────────────────────────────────────────
DEFAULT_RATE_LIMIT = _settings.rate_limit_default
QUOTE_LIMIT = _settings.rate_limit_quote
INSIGHTS_LIMIT = _settings.rate_limit_insights

limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri=_settings.rate_limit_storage_uri,
    strategy="fixed-window",
)
