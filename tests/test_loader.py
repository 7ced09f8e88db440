"""Unit tests for image_transcoder.processing.loader.

Covers query validation, boundary coercion of raw values into source
variants, and dispatch of each variant to its engine entry point.
"""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
from PIL import Image

from image_transcoder.errors import InvalidQueryError, UnsupportedSourceTypeError
from image_transcoder.processing.loader import (
    coerce_source,
    load_source,
    validate_query,
)
from image_transcoder.processing.paths import MediaRootPathResolver
from image_transcoder.processing.types import (
    BytesSource,
    DecodedImageSource,
    PathSource,
    ProcessImageQuery,
    StreamSource,
)


class TestValidateQuery:
    """Only a missing source is rejected."""

    @pytest.mark.parametrize(
        "source",
        [None, b"", bytearray(), "", "  ", BytesSource(b""), PathSource(" ")],
    )
    def test_empty_sources_rejected(self, source) -> None:
        with pytest.raises(InvalidQueryError, match="must not be None or empty"):
            validate_query(ProcessImageQuery(source=source))

    def test_missing_query_rejected(self) -> None:
        with pytest.raises(InvalidQueryError, match="query must not be None"):
            validate_query(None)

    def test_invalid_query_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_query(ProcessImageQuery(source=None))

    def test_other_fields_not_validated(self) -> None:
        """Odd sizes and formats are left to downstream stages."""
        validate_query(
            ProcessImageQuery(source=b"x", max_width=-5, format="???", quality=900)
        )

    def test_unknown_types_pass_validation(self) -> None:
        """Type checking belongs to the loader, after timing starts."""
        validate_query(ProcessImageQuery(source=42))


class TestCoerceSource:
    """Raw values map onto exactly one variant."""

    def test_bytes_like(self) -> None:
        assert coerce_source(b"abc") == BytesSource(b"abc")
        assert coerce_source(bytearray(b"abc")) == BytesSource(b"abc")
        assert coerce_source(memoryview(b"abc")) == BytesSource(b"abc")

    def test_stream(self) -> None:
        stream = io.BytesIO(b"abc")

        assert coerce_source(stream) == StreamSource(stream)

    def test_pil_image(self) -> None:
        image = Image.new("L", (2, 2))

        assert coerce_source(image) == DecodedImageSource(image)

    def test_ndarray(self) -> None:
        array = np.zeros((2, 2), dtype=np.uint8)

        variant = coerce_source(array)

        assert isinstance(variant, DecodedImageSource)
        assert variant.image is array

    def test_paths(self, tmp_path: Path) -> None:
        assert coerce_source("a/b.png") == PathSource("a/b.png")
        assert coerce_source(tmp_path / "c.png") == PathSource(str(tmp_path / "c.png"))

    def test_variants_unchanged(self) -> None:
        variant = PathSource("x.png")

        assert coerce_source(variant) is variant

    @pytest.mark.parametrize(
        ("value", "type_name"),
        [
            (42, "builtins.int"),
            (3.5, "builtins.float"),
            ({"a": 1}, "builtins.dict"),
            (object(), "builtins.object"),
        ],
    )
    def test_unsupported_type_names_fully_qualified(self, value, type_name) -> None:
        with pytest.raises(UnsupportedSourceTypeError) as exc_info:
            coerce_source(value)

        assert exc_info.value.type_name == type_name
        assert f"'{type_name}'" in str(exc_info.value)

    def test_user_class_includes_module(self) -> None:
        class Custom:
            pass

        with pytest.raises(UnsupportedSourceTypeError) as exc_info:
            coerce_source(Custom())

        assert exc_info.value.type_name == (
            f"{__name__}.TestCoerceSource.test_user_class_includes_module."
            "<locals>.Custom"
        )

    def test_unsupported_is_type_error(self) -> None:
        with pytest.raises(TypeError):
            coerce_source(1.0)


class TestLoadSource:
    """Each variant reaches its own engine method and no other."""

    def test_bytes_dispatch(self) -> None:
        engine = MagicMock()

        load_source(engine, BytesSource(b"data"), MediaRootPathResolver())

        engine.decode_bytes.assert_called_once_with(b"data")
        engine.decode_stream.assert_not_called()

    def test_stream_dispatch(self) -> None:
        engine = MagicMock()
        stream = io.BytesIO(b"data")

        load_source(engine, StreamSource(stream), MediaRootPathResolver())

        engine.decode_stream.assert_called_once_with(stream)
        engine.decode_bytes.assert_not_called()

    def test_decoded_image_adopted_without_decode(self) -> None:
        engine = MagicMock()
        image = Image.new("RGB", (4, 4))

        load_source(engine, DecodedImageSource(image), MediaRootPathResolver())

        engine.adopt.assert_called_once_with(image)
        engine.decode_bytes.assert_not_called()
        engine.decode_stream.assert_not_called()
        engine.decode_path.assert_not_called()

    def test_path_resolved_then_decoded(self, tmp_path: Path) -> None:
        engine = MagicMock()

        load_source(engine, PathSource("~/a.png"), MediaRootPathResolver(tmp_path))

        engine.decode_path.assert_called_once_with(tmp_path / "a.png")

    def test_returns_engine_result(self) -> None:
        engine = MagicMock()

        result = load_source(engine, BytesSource(b"x"), MediaRootPathResolver())

        assert result is engine.decode_bytes.return_value
