"""
Rate limiting implementation using Redis.

Fixed-window counters keyed by client IP (unauthenticated routes) or by
user/tenant once a session has been validated.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from educore.config import settings
from educore.core.cache import cache_manager

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit rule."""

    requests: int     # Max requests
    window: int       # Time window in seconds
    key_prefix: str   # Key prefix for namespacing


# Predefined rate limit tiers
RATE_LIMITS = {
    "default": RateLimitConfig(requests=60, window=60, key_prefix="rl"),
    "auth": RateLimitConfig(requests=5, window=60, key_prefix="rl_auth"),
    "register": RateLimitConfig(requests=3, window=300, key_prefix="rl_register"),
}


async def check_rate_limit(
    identifier: str,
    limit_type: str = "default",
) -> dict:
    """
    Check if identifier has exceeded rate limit.

    Args:
        identifier: Unique identifier (user_id, ip, tenant_id)
        limit_type: Rate limit tier to apply

    Returns:
        Dict with rate limit info

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    config = RATE_LIMITS.get(limit_type, RATE_LIMITS["default"])
    key = f"{identifier}:{limit_type}"

    try:
        current_count = await cache_manager.increment(
            namespace=config.key_prefix,
            key=key,
            ttl=config.window,
        )
        ttl = await cache_manager.get_ttl(config.key_prefix, key)
    except Exception as e:
        # Redis down: rate limiting fails open, authentication itself does not
        logger.error(f"Rate limit check error: {e}")
        return {"limit": config.requests, "remaining": config.requests, "reset": 0}

    remaining = max(0, config.requests - current_count)

    if current_count > config.requests:
        logger.warning(
            f"Rate limit exceeded: {identifier} ({limit_type}) "
            f"{current_count}/{config.requests}"
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many requests. Retry after {ttl} seconds.",
            headers={
                "X-RateLimit-Limit": str(config.requests),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(ttl),
                "Retry-After": str(ttl),
            },
        )

    return {
        "limit": config.requests,
        "remaining": remaining,
        "reset": ttl,
        "current": current_count,
    }


def rate_limit(limit_type: str = "default"):
    """
    Rate limiting dependency factory, keyed by client IP.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit("auth"))])
        async def login(...):
            ...
    """
    async def dependency(request: Request) -> dict | None:
        if not settings.rate_limit_enabled:
            return None
        identifier = request.client.host if request.client else "unknown"
        return await check_rate_limit(identifier, limit_type)

    return dependency
