"""
Data models for the forum media API.

This module provides Pydantic models for the compression pipeline records
and for request/response validation and documentation.
"""
from forumkit.models.base import (
    BaseMetrics,
    ErrorResponse
)

from forumkit.models.photo import (
    CompressionInput,
    CompressionOutput,
    PhotoLimits,
    PhotoQuota,
    ValidationResponse,
    StoragePathsResponse,
    PhotoCompressionResponse,
    PhotoBatchResult,
    PhotoBatchResponse
)

from forumkit.models.rate_limit import (
    RateLimitConfig,
    RateLimitResult,
    RateLimitResponse
)

__all__ = [
    # Base models
    'BaseMetrics',
    'ErrorResponse',

    # Photo models
    'CompressionInput',
    'CompressionOutput',
    'PhotoLimits',
    'PhotoQuota',
    'ValidationResponse',
    'StoragePathsResponse',
    'PhotoCompressionResponse',
    'PhotoBatchResult',
    'PhotoBatchResponse',

    # Rate limit models
    'RateLimitConfig',
    'RateLimitResult',
    'RateLimitResponse'
]
