"""Transcode pipeline: query types, stages and the orchestrating processor."""

from image_transcoder.processing.formats import (
    DEFAULT_FORMAT_OPTIONS,
    DEFAULT_QUALITY,
    FormatOptions,
    build_format_options,
    select_format,
)
from image_transcoder.processing.loader import (
    coerce_source,
    load_source,
    validate_query,
)
from image_transcoder.processing.paths import MediaRootPathResolver, PathResolver
from image_transcoder.processing.postprocess import (
    PassThroughPostProcessor,
    PillowPostProcessor,
    PostProcessor,
)
from image_transcoder.processing.processor import ImageProcessor
from image_transcoder.processing.resize import fit_within, resize_to_fit
from image_transcoder.processing.types import (
    BytesSource,
    DecodedImageSource,
    PathSource,
    ProcessImageQuery,
    ProcessImageResult,
    SourceVariant,
    StreamSource,
)

__all__ = [
    "BytesSource",
    "DEFAULT_FORMAT_OPTIONS",
    "DEFAULT_QUALITY",
    "DecodedImageSource",
    "FormatOptions",
    "ImageProcessor",
    "MediaRootPathResolver",
    "PassThroughPostProcessor",
    "PathResolver",
    "PathSource",
    "PillowPostProcessor",
    "PostProcessor",
    "ProcessImageQuery",
    "ProcessImageResult",
    "SourceVariant",
    "StreamSource",
    "build_format_options",
    "coerce_source",
    "fit_within",
    "load_source",
    "resize_to_fit",
    "select_format",
    "validate_query",
]
