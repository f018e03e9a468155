"""
Shared fixtures for the forumkit test suite.
"""
from io import BytesIO

import numpy as np
import pytest
from PIL import Image
from fastapi.testclient import TestClient

from forumkit.api import create_app
from forumkit.core.rate_limit import RateLimiter
from forumkit.models.photo import CompressionInput


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    def set(self, ms: int) -> None:
        self.now = ms


def encode_image(image: Image.Image, fmt: str, **params) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def gradient_image(width: int, height: int, mode: str = "RGB") -> Image.Image:
    """Smooth image that compresses well."""
    x = np.linspace(0, 255, width, dtype=np.uint8)
    y = np.linspace(0, 255, height, dtype=np.uint8)
    r = np.tile(x, (height, 1))
    g = np.tile(y[:, None], (1, width))
    b = np.full((height, width), 128, dtype=np.uint8)
    channels = [r, g, b]
    if mode == "RGBA":
        channels.append(np.full((height, width), 255, dtype=np.uint8))
    return Image.fromarray(np.dstack(channels))


def noise_image(width: int, height: int, seed: int = 1234) -> Image.Image:
    """High-entropy image that defeats JPEG compression."""
    rng = np.random.default_rng(seed)
    return Image.fromarray(rng.integers(0, 256, (height, width, 3), dtype=np.uint8))


def make_input(data: bytes, mime_type: str, file_name: str) -> CompressionInput:
    return CompressionInput.from_bytes(data, mime_type, file_name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


@pytest.fixture
def client(limiter):
    """Create test client with an isolated rate limiter."""
    with TestClient(create_app(rate_limiter=limiter)) as c:
        yield c


@pytest.fixture
def jpeg_bytes():
    return encode_image(gradient_image(1600, 900), "JPEG", quality=90)


@pytest.fixture
def transparent_png_bytes():
    image = gradient_image(300, 200, mode="RGBA")
    alpha = Image.new("L", image.size, 255)
    alpha.paste(0, (0, 0, 300, 100))
    image.putalpha(alpha)
    return encode_image(image, "PNG")
