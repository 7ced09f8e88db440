"""Post-processing of encoded images.

A post-processor receives the encoder's output and returns a replacement
stream, normally a smaller lossless re-encoding. Strategies are chosen per
file extension; extensions without a strategy pass through untouched.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from PIL import Image

from image_transcoder.observability.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class PostProcessor(Protocol):  # pragma: no cover
    """Protocol for the optional post-processing stage."""

    def post_process(
        self, data: io.BytesIO, file_name: str | None, extension: str
    ) -> io.BytesIO:
        """Return the stream to deliver in place of ``data``.

        Args:
            data: Encoded image positioned at offset 0.
            file_name: Advisory original file name (may be None).
            extension: Extension of the encoded format, no dot.

        Returns:
            Stream positioned at offset 0.
        """
        ...


class PassThroughPostProcessor(PostProcessor):
    """Post-processor that returns its input unchanged."""

    def post_process(
        self, data: io.BytesIO, file_name: str | None, extension: str
    ) -> io.BytesIO:
        data.seek(0)
        return data


@dataclass(frozen=True)
class OptimizeStrategy:
    """How to re-save one format: Pillow format name plus save options."""

    codec_format: str
    save_options: dict[str, Any] = field(default_factory=dict)


#: Lossless re-save strategies keyed by lowercase extension.
DEFAULT_STRATEGIES: dict[str, OptimizeStrategy] = {
    "png": OptimizeStrategy("PNG", {"optimize": True}),
    "jpg": OptimizeStrategy(
        "JPEG", {"optimize": True, "quality": "keep", "subsampling": "keep"}
    ),
    "jpeg": OptimizeStrategy(
        "JPEG", {"optimize": True, "quality": "keep", "subsampling": "keep"}
    ),
    "gif": OptimizeStrategy("GIF", {"optimize": True}),
}


class PillowPostProcessor(PostProcessor):
    """Re-save encoded images with Pillow's optimizing encoders.

    The optimized copy is only used when it is strictly smaller; otherwise
    the original stream is returned. WebP and unknown extensions pass
    through, since re-encoding them would be lossy.

    Example:
        >>> processor = PillowPostProcessor()
        >>> out = processor.post_process(png_stream, "photo.png", "png")
        >>> len(out.getvalue()) <= len(png_stream.getvalue())
        True
    """

    def __init__(self, strategies: dict[str, OptimizeStrategy] | None = None):
        self.strategies = dict(DEFAULT_STRATEGIES if strategies is None else strategies)

    def post_process(
        self, data: io.BytesIO, file_name: str | None, extension: str
    ) -> io.BytesIO:
        """Optimize ``data`` according to its extension.

        The extension of the encoded format takes precedence; the file
        name's extension is used only when ``extension`` is empty.

        Raises:
            OSError: If Pillow cannot read or write the image. Not caught.
        """
        key = (extension or _extension_of(file_name)).lower()
        strategy = self.strategies.get(key)
        data.seek(0)
        if strategy is None:
            return data

        original_size = len(data.getbuffer())
        optimized = io.BytesIO()
        with Image.open(data) as image:
            image.save(optimized, format=strategy.codec_format, **strategy.save_options)

        optimized_size = len(optimized.getbuffer())
        logger.debug(
            "Post-processed image",
            file_name=file_name,
            extension=key,
            original_bytes=original_size,
            optimized_bytes=optimized_size,
        )

        if optimized_size >= original_size:
            data.seek(0)
            return data
        optimized.seek(0)
        return optimized


def _extension_of(file_name: str | None) -> str:
    if not file_name:
        return ""
    return os.path.splitext(file_name)[1].lstrip(".")
