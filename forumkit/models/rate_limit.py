"""
Models for sliding-window rate limiting.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RateLimitConfig(BaseModel):
    """A named (max_requests, window_ms) policy"""
    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(..., ge=1, description="Requests allowed inside the window")
    window_ms: int = Field(..., ge=1, description="Window length in milliseconds")


class RateLimitResult(BaseModel):
    """Outcome of a rate limit check"""
    model_config = ConfigDict(frozen=True)

    allowed: bool = Field(..., description="Whether the request may proceed")
    remaining: int = Field(..., description="Requests left in the current window")
    retry_after_ms: Optional[int] = Field(
        None, description="Milliseconds until a slot frees up (only when denied)"
    )


class RateLimitResponse(RateLimitResult):
    """Response model for the named rate limit check endpoint"""
    action: str = Field(..., description="Rate limited action name")
    limit: int = Field(..., description="Configured maximum requests")
    window_ms: int = Field(..., description="Configured window length in milliseconds")
