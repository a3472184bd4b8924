"""
Per-client throttling of the discovery endpoints (slowapi).

Clients are keyed by the first X-Forwarded-For hop when the service sits
behind a proxy, otherwise by the socket peer address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from tour_search.core.config import settings

logger = logging.getLogger(__name__)

# Per-endpoint limits
SEARCH_LIMIT = "100/minute"
NEARBY_LIMIT = "60/minute"
LIST_LIMIT = "120/minute"
HEALTH_LIMIT = "1000/minute"

RETRY_AFTER_SECONDS = 60


def client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=client_key, enabled=settings.rate_limit_enabled)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same envelope as the other client errors."""
    logger.warning(f"Rate limit {exc.detail} exceeded by {client_key(request)} on {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "too_many_requests",
            "message": "Too many search requests. Please retry later.",
            "detail": [f"limit: {exc.detail}"],
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
