"""
Fixed-window rate limiting keyed by client address and route prefix.

Each route group shares one counter per client: ``limiter.shared_limit``
scopes the counter to the group name, and the key function contributes the
client address. Limits are read from settings on every request so they can
be tuned per environment.

Counters live in the storage named by ``rate_limit_storage_uri``. The
default ``memory://`` keeps them in this process only: limiting is
best-effort and resets on restart.
"""

import math
import time
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.core.config import get_settings
from src.core.exceptions import RateLimitError, error_body
from src.core.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    strategy="fixed-window",
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


def _limit_for(setting_name: str) -> Callable[[], str]:
    def provider() -> str:
        return getattr(get_settings(), setting_name)

    return provider


devices_rate_limit = limiter.shared_limit(_limit_for("rate_limit_devices"), scope="devices")
quotes_rate_limit = limiter.shared_limit(_limit_for("rate_limit_quotes"), scope="quotes")
trade_in_rate_limit = limiter.shared_limit(_limit_for("rate_limit_trade_in"), scope="trade-in")
staff_rate_limit = limiter.shared_limit(_limit_for("rate_limit_staff"), scope="staff")


def retry_after_seconds(request: Request) -> int:
    """
    Seconds until the exhausted window resets, at least one.

    Reads the window that slowapi recorded on the request when the limit
    was hit.
    """
    current = getattr(request.state, "view_rate_limit", None)
    if current is None:
        return 1
    item, identifiers = current
    reset_at, _remaining = limiter.limiter.get_window_stats(item, *identifiers)
    return max(1, math.ceil(reset_at - time.time()))


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Render a slowapi rejection as the standard 429 error envelope."""
    retry_after = retry_after_seconds(request)
    error = RateLimitError(retry_after=retry_after)

    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        client=get_remote_address(request),
        limit=str(exc.detail),
        retry_after=retry_after,
    )

    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.message, error.code),
        headers={"Retry-After": str(retry_after)},
    )
