"""
Photo compression for forum uploads.

Every upload is decoded, fitted into a 1200x1200 box and re-encoded,
together with a 400x400 thumbnail. PNG and GIF sources that actually
contain transparency stay lossless PNG; everything else becomes JPEG,
with a single fallback step down in quality when the first encode is
over the byte budget.
"""
import re
import math
import asyncio
import logging
from typing import Optional, Tuple

from forumkit import config
from forumkit.core.errors import ValidationError
from forumkit.core.raster import JPEG_MIME, PNG_MIME, PillowSurface, RasterSurface
from forumkit.models.photo import CompressionInput, CompressionOutput

# Set up logging
logger = logging.getLogger(__name__)

TRANSPARENT_SOURCE_TYPES = ("image/png", "image/gif")

TOO_LARGE_MESSAGE = "This file is too large. Please use a photo under 10MB."
NOT_AN_IMAGE_MESSAGE = "Only image files are allowed."

_EXTENSION_RE = re.compile(r"\.[^.]+$")
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_-]")


def validate_file_size(file: CompressionInput) -> Optional[str]:
    """
    Pre-flight check run before committing to compression.

    Returns:
        A user facing error message, or None if the file can be compressed
    """
    if file.size > config.MAX_INPUT_BYTES:
        return TOO_LARGE_MESSAGE
    if not file.mime_type.startswith("image/"):
        return NOT_AN_IMAGE_MESSAGE
    return None


validate = validate_file_size


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scale_to_fit(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Fit dimensions into a bounding box, preserving aspect ratio.

    Dimensions already inside the box are returned unchanged.
    """
    if width > max_width or height > max_height:
        ratio = min(max_width / width, max_height / height)
        width = max(1, _round_half_up(width * ratio))
        height = max(1, _round_half_up(height * ratio))
    return width, height


def sanitize_segment(value: str) -> str:
    """Replace anything outside [a-zA-Z0-9_-] with '-' so the value is safe as one path segment."""
    return _UNSAFE_CHARS_RE.sub("-", value)


def sanitize_base_name(file_name: str) -> str:
    """Strip the extension and replace anything outside [a-zA-Z0-9_-] with '-'."""
    return sanitize_segment(_EXTENSION_RE.sub("", file_name))


def output_file_name(file_name: str, mime_type: str) -> str:
    ext = "png" if mime_type == PNG_MIME else "jpg"
    return f"{sanitize_base_name(file_name)}.{ext}"


def has_alpha(surface: RasterSurface, stride: int = config.ALPHA_SAMPLE_STRIDE) -> bool:
    """
    Check a surface for transparent pixels.

    Only every ``stride``-th pixel is inspected, so small transparent
    regions can be missed. Values of 250 and above count as opaque to
    tolerate encoder noise.
    """
    return any(a < config.ALPHA_OPAQUE_THRESHOLD for a in surface.sample_alpha(stride))


def encode_with_budget(surface: RasterSurface, max_bytes: int = config.MAX_OUTPUT_BYTES) -> Tuple[bytes, float]:
    """
    Encode a JPEG using the two-step quality ladder.

    The fallback result is accepted even if it is still over budget.

    Returns:
        Tuple of (blob, quality used)
    """
    blob = surface.encode(JPEG_MIME, config.INITIAL_QUALITY)
    if len(blob) <= max_bytes:
        return blob, config.INITIAL_QUALITY

    logger.debug(
        f"JPEG at quality {config.INITIAL_QUALITY} is {len(blob)} bytes, "
        f"retrying at {config.FALLBACK_QUALITY}"
    )
    return surface.encode(JPEG_MIME, config.FALLBACK_QUALITY), config.FALLBACK_QUALITY


def compress_decoded(file: CompressionInput, source: RasterSurface) -> CompressionOutput:
    """Run the resize and encode steps on an already decoded bitmap."""
    width, height = scale_to_fit(source.width, source.height, config.MAX_WIDTH, config.MAX_HEIGHT)
    canvas = source.resized(width, height)

    quality: Optional[float]
    if file.mime_type in TRANSPARENT_SOURCE_TYPES and has_alpha(canvas):
        mime_type = PNG_MIME
        blob = canvas.encode(PNG_MIME, 1.0)
        quality = None
    else:
        mime_type = JPEG_MIME
        blob, quality = encode_with_budget(canvas)

    thumb_width, thumb_height = scale_to_fit(
        source.width, source.height, config.THUMB_SIZE, config.THUMB_SIZE
    )
    thumbnail = source.resized(thumb_width, thumb_height).encode(JPEG_MIME, config.THUMB_QUALITY)

    return CompressionOutput(
        blob=blob,
        thumbnail=thumbnail,
        mime_type=mime_type,
        width=width,
        height=height,
        original_size=file.size,
        compressed_size=len(blob),
        thumbnail_size=len(thumbnail),
        file_name=output_file_name(file.file_name, mime_type),
        quality=quality,
    )


def compress_image(file: CompressionInput) -> CompressionOutput:
    """
    Compress an uploaded photo and build its thumbnail.

    Args:
        file: The uploaded image

    Returns:
        CompressionOutput with the main image and thumbnail

    Raises:
        ValidationError: If the file fails the pre-flight check
        DecodeError: If the image cannot be decoded
        EncodeError: If the main image or thumbnail cannot be encoded
    """
    error = validate_file_size(file)
    if error:
        raise ValidationError(error, too_large=file.size > config.MAX_INPUT_BYTES)

    source = PillowSurface.decode(file.data)
    result = compress_decoded(file, source)

    logger.info(
        f"Compressed {file.file_name!r} {source.width}x{source.height} -> "
        f"{result.width}x{result.height} {result.mime_type} "
        f"({file.size} -> {result.compressed_size} bytes, thumbnail {result.thumbnail_size} bytes)"
    )
    return result


async def compress_image_async(file: CompressionInput) -> CompressionOutput:
    """Run compress_image in a worker thread so the event loop keeps serving requests."""
    return await asyncio.to_thread(compress_image, file)
