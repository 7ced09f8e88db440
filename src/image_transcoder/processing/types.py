"""Value types for the transcode pipeline.

Source variants:
    BytesSource          raw encoded bytes
    StreamSource         readable binary stream positioned at the start
    DecodedImageSource   an already decoded image (PIL image or ndarray)
    PathSource           a path or virtual path to an image file

A ``ProcessImageQuery`` may carry a variant directly or a raw value
(``bytes``, a stream, a PIL image, a path string, ...) which the loader
coerces into a variant at the boundary.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import Any, BinaryIO


@dataclass(frozen=True)
class BytesSource:
    """Encoded image bytes."""

    data: bytes


@dataclass(frozen=True)
class StreamSource:
    """Readable binary stream holding an encoded image."""

    stream: BinaryIO


@dataclass(frozen=True)
class DecodedImageSource:
    """An already decoded image handle (``PIL.Image.Image`` or ndarray)."""

    image: Any


@dataclass(frozen=True)
class PathSource:
    """Path or virtual path (``~/media/photo.png``) of an image file."""

    path: str


SourceVariant = BytesSource | StreamSource | DecodedImageSource | PathSource


@dataclass(frozen=True)
class ProcessImageQuery:
    """Input of a single ``process_image`` call.

    Attributes:
        source: A SourceVariant, or a raw value coerced into one.
        max_width: Maximum output width; None leaves the axis unbounded.
        max_height: Maximum output height; None leaves the axis unbounded.
        format: Requested output format token (case-insensitive). None or
            an unrecognized token keeps the codec's native format.
        quality: Encoder quality; the configured default (90) applies when
            a format is requested without one.
        execute_post_processor: Run the post-processing stage.
        dispose_source: Close the caller's source (stream or image) after
            the call, whatever its outcome.
        file_name: Advisory name handed to the post-processor.
    """

    source: Any
    max_width: int | None = None
    max_height: int | None = None
    format: str | None = None
    quality: int | None = None
    execute_post_processor: bool = False
    dispose_source: bool = False
    file_name: str | None = None


@dataclass
class ProcessImageResult:
    """Output of a single ``process_image`` call.

    Ownership of ``result`` passes to the caller on return.
    """

    query: ProcessImageQuery
    source_width: int = 0
    source_height: int = 0
    width: int = 0
    height: int = 0
    file_extension: str | None = None
    mime_type: str | None = None
    process_time_ms: int = 0
    result: io.BytesIO | None = None


def unwrap_source(value: Any) -> Any:
    """Return the caller-owned object behind a variant (or the value itself)."""
    if isinstance(value, StreamSource):
        return value.stream
    if isinstance(value, DecodedImageSource):
        return value.image
    return value


def is_disposable(value: Any) -> bool:
    """Return True when the source owns a resource released by ``close()``.

    Example:
        >>> is_disposable(io.BytesIO(b""))
        True
        >>> is_disposable(BytesSource(b"raw"))
        False
    """
    value = unwrap_source(value)
    if isinstance(value, (BytesSource, PathSource)):
        return False
    if isinstance(value, (bytes, bytearray, memoryview, str, os.PathLike)):
        return False
    return callable(getattr(value, "close", None))
