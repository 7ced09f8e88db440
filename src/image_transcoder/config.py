"""Processor configuration and factory.

Selects the codec backend and the pipeline policies, and owns the
process-wide processing time accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from image_transcoder.codecs.engine import CodecEngine
from image_transcoder.codecs.registry import (
    OPENCV_FORMATS,
    FormatRegistry,
    PillowFormatRegistry,
    StaticFormatRegistry,
)
from image_transcoder.observability.stats import ProcessingStats
from image_transcoder.processing.formats import DEFAULT_QUALITY, build_format_options
from image_transcoder.processing.paths import MediaRootPathResolver, PathResolver
from image_transcoder.processing.postprocess import (
    PillowPostProcessor,
    PostProcessor,
)
from image_transcoder.processing.processor import ImageProcessor


class CodecBackend(Enum):
    """Codec engine selection."""

    PILLOW = "pillow"  # All formats, palette PNG
    OPENCV = "opencv"  # jpg/png/webp only


@dataclass
class ProcessorConfig:
    """Configuration for the transcode pipeline.

    Attributes:
        backend: Codec engine to use (default Pillow).
        default_quality: Quality applied when a format is requested
            without one.
        png_indexed: Encode requested PNG output with a 256-color palette.
        media_root: Root directory for virtual (``~/``) and relative path
            sources. None uses paths as given.
        extra_extensions: Extra ``{format: [extensions]}`` entries merged
            into the supported-format registry.
    """

    backend: CodecBackend = CodecBackend.PILLOW
    default_quality: int = DEFAULT_QUALITY
    png_indexed: bool = True
    media_root: Path | None = None
    extra_extensions: dict[str, list[str]] = field(default_factory=dict)


class ProcessorFactory:
    """Factory building pipeline collaborators from a ProcessorConfig.

    Thread Safety:
        Not thread-safe. Configure the global factory once at startup,
        before processing threads start. The processors it creates are
        thread-safe.
    """

    def __init__(self, config: ProcessorConfig | None = None):
        """Initialize with a configuration (defaults when None).

        Example:
            >>> factory = ProcessorFactory(ProcessorConfig(png_indexed=False))
            >>> processor = factory.create_processor()
        """
        self.config = config or ProcessorConfig()

    def create_codec_engine(self) -> CodecEngine:
        """Create the configured codec engine.

        Returns:
            PillowCodecEngine or OpenCVCodecEngine.

        Raises:
            ImportError: If OpenCV is selected but not installed.
        """
        if self.config.backend == CodecBackend.OPENCV:
            from image_transcoder.codecs.opencv import OpenCVCodecEngine

            return OpenCVCodecEngine()

        from image_transcoder.codecs.pillow import PillowCodecEngine

        return PillowCodecEngine()

    def create_format_registry(self) -> FormatRegistry:
        """Create the registry of extensions the configured backend decodes.

        Returns:
            PillowFormatRegistry, or a StaticFormatRegistry over
            OPENCV_FORMATS for the OpenCV backend. Both include
            ``extra_extensions``.
        """
        if self.config.backend == CodecBackend.OPENCV:
            return StaticFormatRegistry(OPENCV_FORMATS, self.config.extra_extensions)
        return PillowFormatRegistry(self.config.extra_extensions)

    def create_post_processor(self) -> PostProcessor:
        return PillowPostProcessor()

    def create_path_resolver(self) -> PathResolver:
        return MediaRootPathResolver(self.config.media_root)

    def create_processor(self, stats: ProcessingStats | None = None) -> ImageProcessor:
        """Create a fully wired ImageProcessor.

        Args:
            stats: Accumulator to record into. None uses the process-wide
                accumulator from ``get_stats()``.

        Returns:
            ImageProcessor using this factory's engine, registry,
            post-processor, path resolver and format policy.
        """
        return ImageProcessor(
            self.create_codec_engine(),
            self.create_format_registry(),
            post_processor=self.create_post_processor(),
            path_resolver=self.create_path_resolver(),
            stats=stats if stats is not None else get_stats(),
            format_options=build_format_options(png_indexed=self.config.png_indexed),
            default_quality=self.config.default_quality,
        )


# Global instances
# Thread Safety: configure() swaps the factory without locking. Call it once at
# startup before processing threads start. The stats accumulator itself is
# thread-safe and lives for the whole process.

_factory: ProcessorFactory | None = None
_stats = ProcessingStats()


def get_factory() -> ProcessorFactory:
    """Get the global factory, creating it with defaults on first access.

    Example:
        >>> get_factory().config.backend
        <CodecBackend.PILLOW: 'pillow'>
    """
    global _factory
    if _factory is None:
        _factory = ProcessorFactory()
    return _factory


def configure(config: ProcessorConfig) -> None:
    """Replace the global factory with one built from ``config``.

    The process-wide stats accumulator is kept; it is never reset.

    Example:
        >>> configure(ProcessorConfig(media_root=Path("/srv/media")))
    """
    global _factory
    _factory = ProcessorFactory(config)


def get_stats() -> ProcessingStats:
    """Return the process-wide processing time accumulator."""
    return _stats


def get_processor() -> ImageProcessor:
    """Create a processor from the global factory bound to the global stats.

    Example:
        >>> processor = get_processor()
        >>> processor.is_supported_image("photo.jpg")
        True
    """
    return get_factory().create_processor(get_stats())
