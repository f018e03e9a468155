"""
API v1 - named rate limit checks for the forum action layer.
"""
from typing import Dict
from fastapi import APIRouter, Depends, HTTPException, Response

from forumkit.api.dependencies import enforce_rate_limit, get_actor, get_rate_limiter
from forumkit.core.rate_limit import RATE_LIMITS, RateLimiter
from forumkit.models.base import ErrorResponse
from forumkit.models.rate_limit import RateLimitConfig, RateLimitResponse


router = APIRouter(prefix="/v1/limits", tags=["Rate Limits v1"])


@router.get("", response_model=Dict[str, RateLimitConfig])
async def list_limits():
    """List the configured rate limit presets."""
    return RATE_LIMITS


@router.post(
    "/{action}",
    response_model=RateLimitResponse,
    responses={404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}}
)
async def check_limit(
    action: str,
    response: Response,
    actor: str = Depends(get_actor),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Record one attempt of ``action`` for the calling actor.

    Returns 429 with a Retry-After header once the actor is over the limit.
    """
    name = action.upper()
    preset = RATE_LIMITS.get(name)
    if preset is None:
        raise HTTPException(status_code=404, detail=f"Unknown rate limited action: {action}")

    result = enforce_rate_limit(limiter, name, actor)
    response.headers["X-RateLimit-Limit"] = str(preset.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    return RateLimitResponse(
        allowed=result.allowed,
        remaining=result.remaining,
        retry_after_ms=result.retry_after_ms,
        action=name,
        limit=preset.max_requests,
        window_ms=preset.window_ms,
    )
