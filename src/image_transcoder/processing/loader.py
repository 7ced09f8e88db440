"""Query validation and source loading.

``coerce_source`` is the only place that inspects raw caller values; from
then on the pipeline works with the tagged variants of
``image_transcoder.processing.types`` and dispatches on their type alone.
"""

from __future__ import annotations

import os
from typing import Any, assert_never

import numpy as np
from PIL import Image

from image_transcoder.codecs.engine import CodecEngine, WorkingImage
from image_transcoder.errors import InvalidQueryError, UnsupportedSourceTypeError
from image_transcoder.processing.paths import PathResolver
from image_transcoder.processing.types import (
    BytesSource,
    DecodedImageSource,
    PathSource,
    ProcessImageQuery,
    SourceVariant,
    StreamSource,
)

_VARIANTS = (BytesSource, StreamSource, DecodedImageSource, PathSource)


def _qualified_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_empty(source: Any) -> bool:
    if source is None:
        return True
    if isinstance(source, BytesSource):
        return len(source.data) == 0
    if isinstance(source, PathSource):
        return not source.path.strip()
    if isinstance(source, (bytes, bytearray, memoryview)):
        return len(source) == 0
    if isinstance(source, str):
        return not source.strip()
    return False


def validate_query(query: ProcessImageQuery | None) -> None:
    """Check a query's preconditions before any codec work.

    Only the source is checked; sizes, format and quality are validated by
    the stages that use them.

    Args:
        query: Query to validate.

    Raises:
        InvalidQueryError: If the query is None, or its source is None,
            empty bytes or a blank path string.

    Example:
        >>> validate_query(ProcessImageQuery(source=None))
        Traceback (most recent call last):
        InvalidQueryError: During image processing 'ProcessImageQuery.source' ...
    """
    if query is None:
        raise InvalidQueryError("During image processing the query must not be None.")
    if _is_empty(query.source):
        raise InvalidQueryError(
            "During image processing 'ProcessImageQuery.source' "
            "must not be None or empty."
        )


def coerce_source(value: Any) -> SourceVariant:
    """Turn a raw caller value into a source variant.

    Mapping:
        bytes / bytearray / memoryview  -> BytesSource
        PIL.Image.Image / numpy.ndarray -> DecodedImageSource
        str / os.PathLike               -> PathSource
        object with a read() method     -> StreamSource
    Variants are returned unchanged.

    Args:
        value: Raw source value from a query.

    Returns:
        The matching SourceVariant.

    Raises:
        UnsupportedSourceTypeError: If the value matches no variant. The
            message names the value's fully-qualified type.

    Example:
        >>> coerce_source(b"\\x89PNG...")
        BytesSource(data=b'\\x89PNG...')
        >>> coerce_source(42)
        Traceback (most recent call last):
        UnsupportedSourceTypeError: Invalid source type 'builtins.int' in query.
    """
    if isinstance(value, _VARIANTS):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesSource(bytes(value))
    if isinstance(value, (Image.Image, np.ndarray)):
        return DecodedImageSource(value)
    if isinstance(value, str):
        return PathSource(value)
    if isinstance(value, os.PathLike):
        path = os.fspath(value)
        if isinstance(path, str):
            return PathSource(path)
    elif callable(getattr(value, "read", None)):
        return StreamSource(value)
    raise UnsupportedSourceTypeError(_qualified_name(value))


def load_source(
    engine: CodecEngine, source: SourceVariant, resolver: PathResolver
) -> WorkingImage:
    """Decode a source variant through the matching engine entry point.

    Args:
        engine: Codec engine doing the decoding.
        source: Tagged source.
        resolver: Maps path sources to physical files.

    Returns:
        A new working image owned by the caller of this function.

    Raises:
        Whatever the engine or resolver raises; nothing is wrapped.
    """
    if isinstance(source, BytesSource):
        return engine.decode_bytes(source.data)
    elif isinstance(source, StreamSource):
        return engine.decode_stream(source.stream)
    elif isinstance(source, DecodedImageSource):
        return engine.adopt(source.image)
    elif isinstance(source, PathSource):
        return engine.decode_path(resolver.resolve(source.path))
    else:
        assert_never(source)
