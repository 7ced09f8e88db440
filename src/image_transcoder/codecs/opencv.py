"""OpenCV-based codec engine.

Alternative engine for deployments that already ship OpenCV. Images are
held as NumPy arrays in BGR(A) order. Encodes JPEG, PNG and WebP; GIF
output is not available through ``cv2.imencode`` and raises ``CodecError``.
Palette PNG is quantized and written with Pillow, which cv2 cannot do.

The cv2 import is deferred to ``__init__`` so importing this module (or the
package) never loads OpenCV unless the engine is actually constructed.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np

from image_transcoder.codecs.engine import (
    CodecEngine,
    EncodedImage,
    EncodeFormat,
    WorkingImage,
)
from image_transcoder.errors import CodecError, UnsupportedSourceTypeError

__all__ = ["OpenCVCodecEngine", "sniff_format"]

#: (token, extension, mime type) for each format cv2.imencode can write.
_WRITABLE: dict[str, tuple[str, str]] = {
    "jpeg": ("jpg", "image/jpeg"),
    "png": ("png", "image/png"),
    "webp": ("webp", "image/webp"),
}

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "jpeg"),
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"BM", "bmp"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
)


def sniff_format(data: bytes) -> str | None:
    """Identify an encoded image's format from its leading bytes.

    OpenCV decodes without reporting the container format, so the engine
    recovers it from the signature.

    Example:
        >>> sniff_format(b"\\x89PNG\\r\\n\\x1a\\n...")
        'png'
        >>> sniff_format(b"not an image") is None
        True
    """
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    for signature, token in _SIGNATURES:
        if data.startswith(signature):
            return token
    return None


class OpenCVCodecEngine(CodecEngine):
    """Codec engine backed by ``cv2.imdecode``/``cv2.imencode``.

    Thread Safety:
        cv2 encode/decode/resize calls are thread-safe on distinct arrays.

    Example:
        >>> engine = OpenCVCodecEngine()
        >>> image = engine.decode_bytes(jpeg_bytes)
        >>> encoded = engine.encode(engine.resize(image, 200, 150), None)
        >>> encoded.file_extension
        'jpg'
    """

    def __init__(self) -> None:
        """Initialize the engine, importing cv2.

        Raises:
            ImportError: If opencv-python(-headless) is not installed.
        """
        import cv2

        self._cv2 = cv2

    def decode_bytes(self, data: bytes) -> WorkingImage:
        """Decode encoded bytes into a BGR(A) array.

        Raises:
            CodecError: If OpenCV cannot decode the data.
        """
        buffer = np.frombuffer(data, dtype=np.uint8)
        array = self._cv2.imdecode(buffer, self._cv2.IMREAD_UNCHANGED)
        if array is None:
            raise CodecError(f"OpenCV could not decode {len(data)} bytes of image data")
        return self._wrap(array, sniff_format(data))

    def decode_stream(self, stream: BinaryIO) -> WorkingImage:
        return self.decode_bytes(stream.read())

    def decode_path(self, path: Path) -> WorkingImage:
        # imread mishandles non-ASCII paths on some platforms; read bytes instead.
        return self.decode_bytes(Path(path).read_bytes())

    def adopt(self, image: Any) -> WorkingImage:
        """Copy an ndarray or PIL image into a new BGR(A) working image.

        Raises:
            UnsupportedSourceTypeError: For any other handle type.
        """
        from PIL import Image

        if isinstance(image, np.ndarray):
            return self._wrap(image.copy(), None)
        if isinstance(image, Image.Image):
            native = image.format.lower() if image.format else None
            normalized = self._normalize_mode(image)
            try:
                array = np.array(normalized)
            finally:
                if normalized is not image:
                    normalized.close()
            if array.ndim == 3 and array.shape[2] == 3:
                array = self._cv2.cvtColor(array, self._cv2.COLOR_RGB2BGR)
            elif array.ndim == 3 and array.shape[2] == 4:
                array = self._cv2.cvtColor(array, self._cv2.COLOR_RGBA2BGRA)
            return self._wrap(array, native)
        cls = type(image)
        raise UnsupportedSourceTypeError(f"{cls.__module__}.{cls.__qualname__}")

    def resize(self, image: WorkingImage, width: int, height: int) -> WorkingImage:
        resized = self._cv2.resize(
            image.handle, (width, height), interpolation=self._cv2.INTER_AREA
        )
        return self._wrap(resized, image.native_format)

    def encode(
        self, image: WorkingImage, selection: EncodeFormat | None
    ) -> EncodedImage:
        """Encode with cv2.imencode.

        Without a selection the native format is kept when OpenCV can write
        it, otherwise PNG is used. Palette PNG is written through Pillow.

        Raises:
            CodecError: For GIF (unsupported) or when imencode fails.
        """
        if selection is not None:
            token = selection.token
            quality = selection.quality
        else:
            token = image.native_format if image.native_format in _WRITABLE else "png"
            quality = None

        if token not in _WRITABLE:
            raise CodecError(f"OpenCV engine cannot encode format '{token}'")
        extension, mime_type = _WRITABLE[token]

        if token == "png" and selection is not None and selection.indexed:
            return EncodedImage(
                data=self._encode_indexed_png(image.handle),
                file_extension=extension,
                mime_type=mime_type,
            )

        params: list[int] = []
        if quality is not None and token == "jpeg":
            params = [self._cv2.IMWRITE_JPEG_QUALITY, quality]
        elif quality is not None and token == "webp":
            params = [self._cv2.IMWRITE_WEBP_QUALITY, quality]

        success, data = self._cv2.imencode(f".{extension}", image.handle, params)
        if not success:
            raise CodecError(
                f"{token.upper()} encoding failed for image "
                f"shape={image.handle.shape}, dtype={image.handle.dtype}"
            )
        return EncodedImage(
            data=io.BytesIO(data.tobytes()),
            file_extension=extension,
            mime_type=mime_type,
        )

    def _encode_indexed_png(self, array: Any) -> io.BytesIO:
        """Quantize a BGR(A) or grayscale array to 256 colors and write PNG.

        cv2.imencode only writes truecolor or grayscale PNG, so the palette
        image is built and saved with Pillow.
        """
        from PIL import Image

        if array.dtype == np.uint16:
            array = (array >> 8).astype(np.uint8)
        if array.ndim == 3 and array.shape[2] == 4:
            rgba = self._cv2.cvtColor(array, self._cv2.COLOR_BGRA2RGBA)
            with Image.fromarray(rgba) as image:
                palette = image.quantize(
                    colors=256, method=Image.Quantize.FASTOCTREE
                )
        else:
            if array.ndim == 3:
                rgb = self._cv2.cvtColor(array, self._cv2.COLOR_BGR2RGB)
            else:
                rgb = self._cv2.cvtColor(array, self._cv2.COLOR_GRAY2RGB)
            with Image.fromarray(rgb) as image:
                palette = image.quantize(colors=256)

        out = io.BytesIO()
        with palette:
            palette.save(out, format="PNG")
        out.seek(0)
        return out

    def dispose(self, image: WorkingImage) -> None:
        image.handle = None

    @staticmethod
    def _normalize_mode(image: Any) -> Any:
        """Return an RGB(A) or L view of a PIL image that np.array maps 1:1.

        Palette, bilevel, CMYK and other modes would otherwise yield palette
        indices or foreign channels instead of pixel colors.
        """
        if image.mode in ("RGB", "RGBA", "L"):
            return image
        has_alpha = image.mode in ("LA", "PA", "RGBa", "La") or (
            image.mode == "P" and "transparency" in image.info
        )
        return image.convert("RGBA" if has_alpha else "RGB")

    @staticmethod
    def _wrap(array: Any, native_format: str | None) -> WorkingImage:
        height, width = array.shape[:2]
        return WorkingImage(
            handle=array,
            width=int(width),
            height=int(height),
            native_format=native_format,
        )
