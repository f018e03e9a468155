"""
Request dependencies shared by the API routers.
"""
import logging
from fastapi import HTTPException, Request, status

from forumkit import config
from forumkit.core.quota import DEFAULT_ROLE
from forumkit.core.rate_limit import (
    RATE_LIMITS,
    RateLimiter,
    rate_limit_key,
    rate_limit_message,
    retry_after_seconds,
)
from forumkit.models.rate_limit import RateLimitResult

# Set up logging
logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_actor(request: Request) -> str:
    """Actor ID from the gateway header, falling back to the client address."""
    actor = request.headers.get(config.USER_ID_HEADER, "").strip()
    if actor:
        return actor
    return request.client.host if request.client else "anonymous"


def get_role(request: Request) -> str:
    return request.headers.get(config.USER_ROLE_HEADER, "").strip().lower() or DEFAULT_ROLE


def enforce_rate_limit(limiter: RateLimiter, action: str, actor: str) -> RateLimitResult:
    """
    Check a named preset and raise 429 when the actor is over the limit.

    The error message never includes the internal key.
    """
    preset = RATE_LIMITS[action]
    result = limiter.check(preset, rate_limit_key(action, actor))
    if not result.allowed:
        logger.info(f"Rate limited {action} for actor {actor} (retry in {result.retry_after_ms}ms)")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=rate_limit_message(result),
            headers={"Retry-After": str(retry_after_seconds(result))},
        )
    return result
