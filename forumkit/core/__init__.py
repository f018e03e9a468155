"""
Core implementations for the forum media service.

This package contains:
- compression: photo resizing, format selection and the JPEG quality ladder
- raster: the RasterSurface abstraction and its Pillow backend
- rate_limit: the in-memory sliding-window rate limiter
- quota: per-role photo upload limits
"""
from forumkit.core.errors import (
    CompressionError,
    ValidationError,
    DecodeError,
    EncodeError
)

from forumkit.core.raster import (
    JPEG_MIME,
    PNG_MIME,
    RasterSurface,
    PillowSurface
)

from forumkit.core.compression import (
    validate,
    validate_file_size,
    scale_to_fit,
    sanitize_base_name,
    sanitize_segment,
    compress_image,
    compress_image_async
)

from forumkit.core.rate_limit import (
    RATE_LIMITS,
    RateLimiter,
    rate_limit_key,
    retry_after_seconds
)

from forumkit.core.quota import (
    PHOTO_LIMITS,
    get_photo_limits,
    get_photo_quota,
    check_upload_batch,
    is_storable
)

__all__ = [
    # Errors
    'CompressionError',
    'ValidationError',
    'DecodeError',
    'EncodeError',

    # Raster backend
    'JPEG_MIME',
    'PNG_MIME',
    'RasterSurface',
    'PillowSurface',

    # Compression
    'validate',
    'validate_file_size',
    'scale_to_fit',
    'sanitize_base_name',
    'sanitize_segment',
    'compress_image',
    'compress_image_async',

    # Rate limiting
    'RATE_LIMITS',
    'RateLimiter',
    'rate_limit_key',
    'retry_after_seconds',

    # Quotas
    'PHOTO_LIMITS',
    'get_photo_limits',
    'get_photo_quota',
    'check_upload_batch',
    'is_storable'
]
