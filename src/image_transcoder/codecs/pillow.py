"""Pillow-based codec engine.

Default engine: decodes everything Pillow can open and encodes JPEG, PNG
(optionally palette-indexed), GIF and WebP, plus any other format Pillow
can write when the source's native format is kept.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np
from PIL import Image

from image_transcoder.codecs.engine import (
    CodecEngine,
    EncodedImage,
    EncodeFormat,
    WorkingImage,
)
from image_transcoder.errors import UnsupportedSourceTypeError

__all__ = ["PillowCodecEngine", "extension_for_format"]

#: Format used when the native format is unknown or cannot be written.
FALLBACK_FORMAT = "PNG"

#: Preferred extension per Pillow format; others use Pillow's first
#: registered extension.
_PREFERRED_EXTENSIONS: dict[str, str] = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "BMP": "bmp",
    "TIFF": "tif",
}

_JPEG_MODES = ("RGB", "L", "CMYK")


def extension_for_format(codec_format: str) -> str:
    """Return the file extension (no dot) for a Pillow format name.

    Example:
        >>> extension_for_format("JPEG")
        'jpg'
        >>> extension_for_format("ICO")
        'ico'
    """
    codec_format = codec_format.upper()
    if codec_format in _PREFERRED_EXTENSIONS:
        return _PREFERRED_EXTENSIONS[codec_format]
    for ext, fmt in Image.registered_extensions().items():
        if fmt == codec_format:
            return ext.lstrip(".")
    return codec_format.lower()


def _mime_for_format(codec_format: str) -> str:
    return Image.MIME.get(codec_format.upper(), "application/octet-stream")


def _loaded(image: Image.Image) -> WorkingImage:
    """Force pixel data in and wrap the image, closing it if loading fails."""
    try:
        image.load()
    except Exception:
        image.close()
        raise
    native = image.format.lower() if image.format else None
    return WorkingImage(
        handle=image, width=image.width, height=image.height, native_format=native
    )


class PillowCodecEngine(CodecEngine):
    """Codec engine backed by Pillow.

    Thread Safety:
        Pillow releases no shared state between distinct Image objects, so
        concurrent calls on different working images are safe.

    Example:
        >>> engine = PillowCodecEngine()
        >>> image = engine.decode_bytes(png_bytes)
        >>> small = engine.resize(image, 200, 150)
        >>> encoded = engine.encode(small, None)
        >>> encoded.mime_type
        'image/png'
    """

    def decode_bytes(self, data: bytes) -> WorkingImage:
        return _loaded(Image.open(io.BytesIO(data)))

    def decode_stream(self, stream: BinaryIO) -> WorkingImage:
        # Pillow never closes a file object it did not open itself.
        return _loaded(Image.open(stream))

    def decode_path(self, path: Path) -> WorkingImage:
        return _loaded(Image.open(path))

    def adopt(self, image: Any) -> WorkingImage:
        """Copy a decoded image into a new working image.

        Accepts ``PIL.Image.Image`` and NumPy arrays (H, W) or (H, W, C) in
        RGB(A) channel order. The copy keeps the caller's image untouched
        and caller-owned.

        Args:
            image: Decoded image handle.

        Returns:
            WorkingImage wrapping an independent copy. ``native_format``
            comes from the PIL image's ``format`` attribute when set.

        Raises:
            UnsupportedSourceTypeError: If ``image`` is neither a PIL image
                nor an ndarray.
            TypeError: If Pillow cannot interpret the array's shape/dtype.

        Example:
            >>> arr = np.zeros((600, 800, 3), dtype=np.uint8)
            >>> engine.adopt(arr).width
            800
        """
        if isinstance(image, Image.Image):
            native = image.format.lower() if image.format else None
            copy = image.copy()
        elif isinstance(image, np.ndarray):
            native = None
            copy = Image.fromarray(np.ascontiguousarray(image)).copy()
        else:
            cls = type(image)
            raise UnsupportedSourceTypeError(f"{cls.__module__}.{cls.__qualname__}")
        return WorkingImage(
            handle=copy, width=copy.width, height=copy.height, native_format=native
        )

    def resize(self, image: WorkingImage, width: int, height: int) -> WorkingImage:
        handle: Image.Image = image.handle
        # Palette and bilevel images would otherwise be resized with NEAREST.
        if handle.mode == "P":
            source = handle.convert("RGBA")
        elif handle.mode == "1":
            source = handle.convert("L")
        else:
            source = handle
        try:
            resized = source.resize((width, height), Image.Resampling.LANCZOS)
        finally:
            if source is not handle:
                source.close()
        return WorkingImage(
            handle=resized,
            width=resized.width,
            height=resized.height,
            native_format=image.native_format,
        )

    def encode(
        self, image: WorkingImage, selection: EncodeFormat | None
    ) -> EncodedImage:
        """Encode a working image to an in-memory stream.

        With an explicit selection the selection's format, quality and
        palette flag are used. Without one the image is written in its
        native format when Pillow can save that format, otherwise as PNG;
        encoder defaults apply in that case.

        Args:
            image: Working image to encode.
            selection: Encoder parameters, or None for the native format.

        Returns:
            EncodedImage positioned at offset 0, carrying the extension and
            MIME type of the format actually written.

        Raises:
            OSError: If Pillow cannot write the image in that format.
            ValueError: On invalid encoder parameters.

        Example:
            >>> sel = EncodeFormat("jpeg", "JPEG", "jpg", "image/jpeg", 90)
            >>> engine.encode(image, sel).data.read(2)
            b'\\xff\\xd8'
        """
        handle: Image.Image = image.handle
        params: dict[str, Any] = {}

        if selection is not None:
            codec_format = selection.codec_format.upper()
            extension = selection.extension
            mime_type = selection.mime_type
            if codec_format in ("JPEG", "WEBP"):
                params["quality"] = selection.quality
        else:
            native = (image.native_format or "").upper()
            Image.init()
            codec_format = native if native in Image.SAVE else FALLBACK_FORMAT
            extension = extension_for_format(codec_format)
            mime_type = _mime_for_format(codec_format)

        prepared = self._prepare(handle, codec_format, selection)
        out = io.BytesIO()
        try:
            prepared.save(out, format=codec_format, **params)
        finally:
            if prepared is not handle:
                prepared.close()
        out.seek(0)
        return EncodedImage(data=out, file_extension=extension, mime_type=mime_type)

    def dispose(self, image: WorkingImage) -> None:
        image.handle.close()

    @staticmethod
    def _prepare(
        handle: Image.Image, codec_format: str, selection: EncodeFormat | None
    ) -> Image.Image:
        """Convert the image to a mode the target encoder accepts."""
        if codec_format == "JPEG" and handle.mode not in _JPEG_MODES:
            return handle.convert("RGB")
        if codec_format == "PNG" and selection is not None and selection.indexed:
            if handle.mode == "P":
                return handle
            if handle.mode == "RGBA":
                return handle.quantize(colors=256, method=Image.Quantize.FASTOCTREE)
            if handle.mode == "RGB":
                return handle.quantize(colors=256)
            with handle.convert("RGBA") as rgba:
                return rgba.quantize(colors=256, method=Image.Quantize.FASTOCTREE)
        return handle
