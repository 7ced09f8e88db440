"""Codec engine abstraction for dependency injection.

The transcode pipeline never talks to an imaging library directly. It
depends on the ``CodecEngine`` protocol, which has two implementations:

Architecture:
    CodecEngine (Protocol) <- PillowCodecEngine (default, all formats)
                           <- OpenCVCodecEngine (jpg/png/webp)
                           <- fake engines (tests)

Every engine works on ``WorkingImage`` values: an engine-owned decoded
handle plus its dimensions and the format it was decoded from. The pipeline
releases each working image through ``CodecEngine.dispose`` once it is done
with it.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Protocol, runtime_checkable

__all__ = ["CodecEngine", "EncodeFormat", "EncodedImage", "WorkingImage"]


@dataclass(frozen=True)
class EncodeFormat:
    """Concrete encoder parameters chosen by the format selector.

    Attributes:
        token: Canonical format token ('jpeg', 'png', 'gif', 'webp').
        codec_format: Library format name ('JPEG', 'PNG', ...).
        extension: File extension without the dot.
        mime_type: MIME type of the encoded bytes.
        quality: Encoder quality 1-100.
        indexed: Encode with a palette (PNG only).
    """

    token: str
    codec_format: str
    extension: str
    mime_type: str
    quality: int = 90
    indexed: bool = False


@dataclass
class WorkingImage:
    """Decoded image owned by the pipeline for the duration of one call.

    Attributes:
        handle: Engine-specific image object (PIL image, ndarray, ...).
        width: Width in pixels.
        height: Height in pixels.
        native_format: Lowercase token of the format it was decoded from,
            or None when unknown (e.g. an adopted in-memory image).
    """

    handle: Any
    width: int
    height: int
    native_format: str | None = None


@dataclass
class EncodedImage:
    """Encoded bytes plus the format the engine actually wrote."""

    data: io.BytesIO
    file_extension: str
    mime_type: str


@runtime_checkable
class CodecEngine(Protocol):  # pragma: no cover
    """Protocol for decode, resize and encode operations.

    Implementations must be safe to call from several threads at once as
    long as each thread uses its own ``WorkingImage`` values.
    """

    def decode_bytes(self, data: bytes) -> WorkingImage:
        """Decode encoded image bytes."""
        ...

    def decode_stream(self, stream: BinaryIO) -> WorkingImage:
        """Decode an encoded image from a stream positioned at its start."""
        ...

    def decode_path(self, path: Path) -> WorkingImage:
        """Decode the image file at ``path``."""
        ...

    def adopt(self, image: Any) -> WorkingImage:
        """Wrap an already decoded image without re-decoding it.

        The returned working image must not share mutable state with
        ``image``: the caller keeps ownership of what it passed in.
        """
        ...

    def resize(self, image: WorkingImage, width: int, height: int) -> WorkingImage:
        """Return a new working image scaled to exactly ``width`` x ``height``."""
        ...

    def encode(
        self, image: WorkingImage, selection: EncodeFormat | None
    ) -> EncodedImage:
        """Encode ``image``.

        With ``selection`` None the engine chooses the output format itself,
        normally the image's native format.
        """
        ...

    def dispose(self, image: WorkingImage) -> None:
        """Release resources held by ``image``."""
        ...
