# backend/salon_booking/middleware/rate_limit.py
"""
Rate limiting for the public widget endpoints.

Fixed-window counters in Redis, keyed by action + tenant slug + client IP:
- reserve           10 / min
- complete          5 / min
- slots             60 / min (slots, availability, service and staff listings)
- link_read         30 / min (reschedule and cancel link views)
- reschedule_write  5 / min
- cancel            10 / min

Redis down → requests are allowed (fail open).
"""

import logging

from fastapi import Request

from ..redis_client import redis_client
from ..config import settings
from ..errors import RateLimitExceeded
from .audit import client_ip

logger = logging.getLogger(__name__)


RATE_LIMITS = {
    "reserve": {"limit": 10, "window": 60},
    "complete": {"limit": 5, "window": 60},
    "slots": {"limit": 60, "window": 60},
    "link_read": {"limit": 30, "window": 60},
    "reschedule_write": {"limit": 5, "window": 60},
    "cancel": {"limit": 10, "window": 60},
}


def check_limit(key: str, limit: int, window: int) -> tuple[bool, int | None]:
    """
    Count one hit. Returns (allowed, retry_after).

    limit=0 means disabled.
    """
    if limit <= 0:
        return True, None

    try:
        pipe = redis_client.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()

        if ttl == -1:
            redis_client.expire(key, window)
            ttl = window

        if count > limit:
            return False, ttl

        return True, None

    except Exception as e:
        logger.error(f"Rate limit check failed: {e}")
        return True, None  # fail open


class RateLimit:
    """
    Dependency: Depends(RateLimit("reserve")).

    The tenant slug comes from the path, so one salon's traffic never
    throttles another's.
    """

    def __init__(self, action: str):
        if action not in RATE_LIMITS:
            raise ValueError(f"Unknown rate limit action: {action}")
        self.action = action

    def __call__(self, request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        config = RATE_LIMITS[self.action]
        slug = request.path_params.get("slug", "-")
        key = f"rl:{self.action}:{slug}:{client_ip(request)}"

        allowed, retry_after = check_limit(key, config["limit"], config["window"])
        if not allowed:
            logger.info(f"Rate limit hit: {self.action} slug={slug}")
            raise RateLimitExceeded(retry_after=retry_after or config["window"])
