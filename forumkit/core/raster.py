"""
Raster surface abstraction used by the compression pipeline.

The compressor only needs four capabilities from an imaging backend:
decode bytes into a bitmap, resize into a fresh surface, sample the
alpha channel and encode to bytes. ``PillowSurface`` implements them
on top of Pillow.
"""
import logging
import struct
from abc import ABC, abstractmethod
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from forumkit.core.errors import DecodeError, EncodeError

# Set up logging
logger = logging.getLogger(__name__)

JPEG_MIME = "image/jpeg"
PNG_MIME = "image/png"

_PIL_FORMATS = {
    JPEG_MIME: "JPEG",
    PNG_MIME: "PNG",
}


def to_8bit(image: Image.Image) -> Image.Image:
    """
    Scale 16-bit greyscale images down to 8-bit "L".

    Pillow clamps ``I``/``I;16`` pixels to 255 when converting straight to
    RGBA, so anything brighter than black would come out white.
    """
    if image.mode == "I" or image.mode.startswith("I;16"):
        return image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    return image


class RasterSurface(ABC):
    """A decoded bitmap that can be resized, sampled and encoded."""

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    @abstractmethod
    def resized(self, width: int, height: int) -> "RasterSurface":
        """Render this bitmap into a new surface of the given dimensions."""

    @abstractmethod
    def sample_alpha(self, stride: int) -> bytes:
        """Return the alpha value of every ``stride``-th pixel in row-major order."""

    @abstractmethod
    def encode(self, mime_type: str, quality: float) -> bytes:
        """
        Encode the surface.

        Args:
            mime_type: ``image/jpeg`` or ``image/png``
            quality: Encoder quality in the 0-1 range (ignored for PNG)

        Raises:
            EncodeError: If the backend cannot produce a blob
        """


class PillowSurface(RasterSurface):
    """RasterSurface backed by an RGBA Pillow image."""

    def __init__(self, image: Image.Image):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self._image = image

    @classmethod
    def decode(cls, data: bytes) -> "PillowSurface":
        """
        Decode image bytes into a surface.

        Only the first frame of animated formats is used. EXIF orientation
        is applied here because encoding drops all metadata.

        Raises:
            DecodeError: If the data is not a readable image
        """
        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                upright = to_8bit(ImageOps.exif_transpose(img))
                return cls(upright.convert("RGBA"))
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Failed to load image: {e}") from e
        except (OSError, ValueError, SyntaxError, struct.error, TypeError, KeyError, IndexError) as e:
            logger.warning(f"Image decode failed: {e}")
            raise DecodeError(f"Failed to load image: {e}") from e

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def resized(self, width: int, height: int) -> "PillowSurface":
        if (width, height) == self._image.size:
            return PillowSurface(self._image.copy())
        return PillowSurface(self._image.resize((width, height), Image.Resampling.LANCZOS))

    def sample_alpha(self, stride: int) -> bytes:
        alpha = self._image.getchannel("A").tobytes()
        return alpha[::max(1, stride)]

    def flattened(self) -> Image.Image:
        """RGB copy of the bitmap composited onto a white background."""
        background = Image.new("RGBA", self._image.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, self._image).convert("RGB")

    def encode(self, mime_type: str, quality: float) -> bytes:
        pil_format = _PIL_FORMATS.get(mime_type)
        if pil_format is None:
            raise EncodeError(f"Unsupported output type: {mime_type}")

        buffer = BytesIO()
        try:
            if pil_format == "JPEG":
                # JPEG has no alpha channel
                self.flattened().save(
                    buffer,
                    format="JPEG",
                    quality=max(1, min(95, round(quality * 100))),
                    optimize=True,
                )
            else:
                self._image.save(buffer, format="PNG", optimize=True)
        except (OSError, ValueError, MemoryError) as e:
            logger.error(f"Failed to encode {mime_type}: {e}")
            raise EncodeError(f"Failed to create blob: {e}") from e

        blob = buffer.getvalue()
        if not blob:
            raise EncodeError("Failed to create blob")
        return blob
