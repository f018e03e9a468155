"""
Exceptions raised by the image compression pipeline.

Rate limiting never raises: a denied request is reported through
``RateLimitResult.allowed``.
"""


class CompressionError(ValueError):
    """Base class for image compression failures."""


class ValidationError(CompressionError):
    """The input failed pre-flight checks (size ceiling or MIME type)."""

    def __init__(self, message: str, too_large: bool = False):
        super().__init__(message)
        self.too_large = too_large


class DecodeError(CompressionError):
    """The image bytes could not be decoded."""


class EncodeError(CompressionError):
    """The raster library could not produce an encoded blob."""
