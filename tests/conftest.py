"""Pytest configuration and fixtures for image-transcoder tests.

Images are generated in memory with Pillow and NumPy; nothing touches the
network and files are only written below ``tmp_path``.
"""

from __future__ import annotations

import io
from collections.abc import Callable

import numpy as np
import pytest
from PIL import Image

from image_transcoder.codecs.pillow import PillowCodecEngine
from image_transcoder.codecs.registry import StaticFormatRegistry
from image_transcoder.observability.stats import ProcessingStats
from image_transcoder.processing.processor import ImageProcessor

ImageBytesFactory = Callable[..., bytes]


def encode_test_image(
    width: int,
    height: int,
    codec_format: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    """Encode a gradient test image of the given size and format.

    A gradient rather than a flat color keeps encoders from collapsing the
    image to a handful of bytes, so size comparisons stay meaningful.
    """
    x = np.linspace(0, 255, width, dtype=np.uint8)
    y = np.linspace(0, 255, height, dtype=np.uint8)
    red = np.tile(x, (height, 1))
    green = np.tile(y[:, None], (1, width))
    blue = np.full((height, width), 128, dtype=np.uint8)
    rgb = np.stack([red, green, blue], axis=2)

    with Image.fromarray(rgb) as base:
        image = base.convert(mode) if mode != "RGB" else base.copy()
    buffer = io.BytesIO()
    with image:
        image.save(buffer, format=codec_format)
    return buffer.getvalue()


@pytest.fixture
def image_bytes() -> ImageBytesFactory:
    """Factory fixture producing encoded test images.

    Example:
        >>> def test_decode(image_bytes):
        ...     data = image_bytes(800, 600, "JPEG")
    """
    return encode_test_image


@pytest.fixture
def png_800x600() -> bytes:
    """800x600 RGB PNG."""
    return encode_test_image(800, 600, "PNG")


@pytest.fixture
def registry() -> StaticFormatRegistry:
    """Registry listing the four output formats plus BMP."""
    return StaticFormatRegistry(
        {
            "JPEG": ["jpg", "jpeg", "jpe", "jfif"],
            "PNG": ["png"],
            "GIF": ["gif"],
            "WEBP": ["webp"],
            "BMP": ["bmp"],
        }
    )


@pytest.fixture
def stats() -> ProcessingStats:
    """Isolated processing time accumulator."""
    return ProcessingStats()


@pytest.fixture
def processor(
    registry: StaticFormatRegistry, stats: ProcessingStats
) -> ImageProcessor:
    """Processor wired to the Pillow engine and an isolated accumulator."""
    return ImageProcessor(PillowCodecEngine(), registry, stats=stats)
