"""Shared SlowAPI rate limiter configuration."""
from __future__ import annotations

import logging
import math
import time

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

# Authentication happens upstream, so requests are bucketed per client address.
limiter = Limiter(key_func=get_remote_address)


def _retry_after(request: Request) -> int | None:
    """Seconds until the exhausted window resets, from the limit slowapi recorded."""

    current = getattr(request.state, "view_rate_limit", None)
    if not current:
        return None
    item, identifiers = current
    reset_at = limiter.limiter.get_window_stats(item, *identifiers)[0]
    return max(1, math.ceil(reset_at - time.time()))


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return a JSON response when a rate limit is exceeded."""

    logger.warning(
        "Rate limit exceeded for path=%s limit=%s", request.url.path, exc.detail
    )
    retry_after = _retry_after(request)
    return JSONResponse(
        {"error": "Rate limit exceeded"},
        status_code=exc.status_code,
        headers={"Retry-After": str(retry_after)} if retry_after else None,
    )
