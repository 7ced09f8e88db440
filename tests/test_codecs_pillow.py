"""Unit tests for image_transcoder.codecs.pillow.PillowCodecEngine."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image, UnidentifiedImageError

from image_transcoder.codecs.engine import CodecEngine, EncodeFormat
from image_transcoder.codecs.pillow import PillowCodecEngine, extension_for_format
from image_transcoder.errors import UnsupportedSourceTypeError

JPEG = EncodeFormat("jpeg", "JPEG", "jpg", "image/jpeg", quality=90)
PNG_INDEXED = EncodeFormat("png", "PNG", "png", "image/png", indexed=True)
WEBP = EncodeFormat("webp", "WEBP", "webp", "image/webp", quality=80)


@pytest.fixture
def engine() -> PillowCodecEngine:
    return PillowCodecEngine()


class TestProtocol:
    def test_implements_codec_engine(self, engine) -> None:
        assert isinstance(engine, CodecEngine)


class TestDecode:
    """Decode entry points report size and native format."""

    def test_decode_bytes(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(80, 60, "JPEG"))

        assert (image.width, image.height) == (80, 60)
        assert image.native_format == "jpeg"

    def test_decode_stream_leaves_stream_open(self, engine, image_bytes) -> None:
        stream = io.BytesIO(image_bytes(20, 10, "PNG"))

        image = engine.decode_stream(stream)
        engine.dispose(image)

        assert image.native_format == "png"
        assert not stream.closed

    def test_decode_path(self, engine, image_bytes, tmp_path: Path) -> None:
        path = tmp_path / "a.bmp"
        path.write_bytes(image_bytes(12, 8, "BMP"))

        image = engine.decode_path(path)

        assert (image.width, image.height, image.native_format) == (12, 8, "bmp")

    def test_corrupt_bytes_raise_pillow_error(self, engine) -> None:
        with pytest.raises(UnidentifiedImageError):
            engine.decode_bytes(b"not an image")

    def test_missing_path_raises(self, engine, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            engine.decode_path(tmp_path / "missing.png")


class TestAdopt:
    """Adopted images are copies the caller keeps owning."""

    def test_adopt_pil_image_copies(self, engine) -> None:
        original = Image.new("RGB", (10, 10), "blue")

        image = engine.adopt(original)
        engine.dispose(image)

        assert image.handle is not original
        assert original.getpixel((0, 0)) == (0, 0, 255)

    def test_adopt_keeps_format_of_decoded_image(self, engine, image_bytes) -> None:
        with Image.open(io.BytesIO(image_bytes(10, 10, "GIF"))) as original:
            image = engine.adopt(original)

        assert image.native_format == "gif"

    def test_adopt_ndarray(self, engine) -> None:
        array = np.zeros((30, 40, 4), dtype=np.uint8)

        image = engine.adopt(array)

        assert (image.width, image.height) == (40, 30)
        assert image.handle.mode == "RGBA"
        assert image.native_format is None

    def test_adopt_rejects_other_types(self, engine) -> None:
        with pytest.raises(UnsupportedSourceTypeError, match="builtins.str"):
            engine.adopt("not an image")


class TestResize:
    def test_resize_returns_new_image(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(80, 60))

        resized = engine.resize(image, 40, 30)

        assert resized is not image
        assert (resized.width, resized.height) == (40, 30)
        assert resized.native_format == "png"
        assert image.handle.size == (80, 60)

    def test_resize_palette_image(self, engine, image_bytes) -> None:
        """Palette images are resampled in RGBA, not nearest-neighbor P."""
        image = engine.decode_bytes(image_bytes(80, 60, "GIF"))

        resized = engine.resize(image, 20, 15)

        assert resized.handle.mode == "RGBA"


class TestEncode:
    """Explicit selections and the native-format fallback."""

    def test_encode_jpeg(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(50, 50, "PNG"))

        encoded = engine.encode(image, JPEG)

        assert encoded.data.tell() == 0
        assert encoded.data.getvalue()[:2] == b"\xff\xd8"
        assert (encoded.file_extension, encoded.mime_type) == ("jpg", "image/jpeg")

    def test_jpeg_quality_affects_size(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(200, 200, "PNG"))
        low = EncodeFormat("jpeg", "JPEG", "jpg", "image/jpeg", quality=10)
        high = EncodeFormat("jpeg", "JPEG", "jpg", "image/jpeg", quality=95)

        assert len(engine.encode(image, low).data.getvalue()) < len(
            engine.encode(image, high).data.getvalue()
        )

    def test_encode_jpeg_from_rgba(self, engine) -> None:
        """Alpha is dropped because JPEG cannot store it."""
        image = engine.adopt(Image.new("RGBA", (10, 10), (255, 0, 0, 128)))

        encoded = engine.encode(image, JPEG)

        with Image.open(encoded.data) as out:
            assert out.mode == "RGB"

    @pytest.mark.parametrize("mode", ["RGB", "RGBA", "L", "P"])
    def test_indexed_png(self, engine, mode) -> None:
        image = engine.adopt(Image.new(mode, (16, 16)))

        encoded = engine.encode(image, PNG_INDEXED)

        with Image.open(encoded.data) as out:
            assert out.format == "PNG"
            assert out.mode == "P"

    def test_non_indexed_png_keeps_mode(self, engine) -> None:
        image = engine.adopt(Image.new("RGB", (16, 16)))
        selection = EncodeFormat("png", "PNG", "png", "image/png", indexed=False)

        with Image.open(engine.encode(image, selection).data) as out:
            assert out.mode == "RGB"

    def test_encode_webp(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(32, 32))

        encoded = engine.encode(image, WEBP)

        data = encoded.data.getvalue()
        assert data[:4] == b"RIFF" and data[8:12] == b"WEBP"
        assert encoded.mime_type == "image/webp"

    def test_native_format_kept(self, engine, image_bytes) -> None:
        image = engine.decode_bytes(image_bytes(20, 20, "BMP"))

        encoded = engine.encode(image, None)

        assert encoded.file_extension == "bmp"
        assert encoded.data.getvalue()[:2] == b"BM"

    def test_unknown_native_format_becomes_png(self, engine) -> None:
        image = engine.adopt(Image.new("RGB", (5, 5)))

        encoded = engine.encode(image, None)

        assert (encoded.file_extension, encoded.mime_type) == ("png", "image/png")

    def test_encode_does_not_close_working_image(self, engine) -> None:
        image = engine.adopt(Image.new("RGBA", (5, 5)))

        engine.encode(image, JPEG)

        assert image.handle.getpixel((0, 0)) == (0, 0, 0, 0)


class TestExtensionForFormat:
    @pytest.mark.parametrize(
        ("codec_format", "extension"),
        [("JPEG", "jpg"), ("png", "png"), ("WEBP", "webp"), ("TIFF", "tif")],
    )
    def test_preferred(self, codec_format, extension) -> None:
        assert extension_for_format(codec_format) == extension

    def test_registered_fallback(self) -> None:
        assert extension_for_format("ICO") == "ico"
