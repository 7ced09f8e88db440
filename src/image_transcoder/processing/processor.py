"""Transcode pipeline.

``ImageProcessor`` turns one ``ProcessImageQuery`` into one
``ProcessImageResult``:

    validate -> load -> resize -> select format -> encode
             -> post-process (optional) -> assemble

Each call runs synchronously on the calling thread. The only state shared
between concurrent calls is the injected ``ProcessingStats`` accumulator and
the read-only format registry.

Example:
    processor = ImageProcessor(PillowCodecEngine(), PillowFormatRegistry())
    result = processor.process_image(
        ProcessImageQuery(source=png_bytes, max_width=200, format="jpg")
    )
    result.width, result.mime_type  # (200, 'image/jpeg')
"""

from __future__ import annotations

import io
import os
import time
from collections.abc import Callable, Mapping
from contextlib import ExitStack

from image_transcoder.codecs.engine import CodecEngine
from image_transcoder.codecs.registry import FormatRegistry
from image_transcoder.observability.logging import LogContext, get_logger
from image_transcoder.observability.stats import ProcessingStats
from image_transcoder.processing.formats import (
    DEFAULT_FORMAT_OPTIONS,
    DEFAULT_QUALITY,
    FormatOptions,
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
    PostProcessor,
)
from image_transcoder.processing.resize import resize_to_fit
from image_transcoder.processing.types import (
    ProcessImageQuery,
    ProcessImageResult,
    is_disposable,
    unwrap_source,
)

logger = get_logger(__name__)


class ImageProcessor:
    """Transcode pipeline with injected collaborators.

    Injectable Dependencies:
        - engine: Codec engine doing decode/resize/encode (required)
        - registry: Supported-format lookup (required)
        - post_processor: Optional compression stage (default: pass-through)
        - path_resolver: Maps path sources to files (default: as given)
        - stats: Processing time accumulator (default: a private instance)
        - clock: Monotonic seconds source (default: time.perf_counter)

    Thread Safety:
        ``process_image`` may be called from many threads at once. The
        stats accumulator is lock-protected and nothing else is mutated.
    """

    def __init__(
        self,
        engine: CodecEngine,
        registry: FormatRegistry,
        *,
        post_processor: PostProcessor | None = None,
        path_resolver: PathResolver | None = None,
        stats: ProcessingStats | None = None,
        format_options: Mapping[str, FormatOptions] = DEFAULT_FORMAT_OPTIONS,
        default_quality: int = DEFAULT_QUALITY,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Assemble a pipeline from its collaborators.

        Args:
            engine: Codec engine.
            registry: Format capability registry used by
                ``is_supported_image``.
            post_processor: Stage run when a query sets
                ``execute_post_processor``.
            path_resolver: Resolver for path sources.
            stats: Accumulator shared with other processors, if any. Pass
                the process-wide instance from ``image_transcoder.config``
                to aggregate across the application.
            format_options: ``{token: FormatOptions}`` table.
            default_quality: Quality applied when a query names a format but
                no quality.
            clock: Time source in seconds, injectable for tests.

        Example:
            >>> stats = ProcessingStats()
            >>> processor = ImageProcessor(engine, registry, stats=stats)
        """
        self._engine = engine
        self._registry = registry
        self._post_processor = post_processor or PassThroughPostProcessor()
        self._path_resolver = path_resolver or MediaRootPathResolver()
        self._stats = stats if stats is not None else ProcessingStats()
        self._format_options = format_options
        self._default_quality = default_quality
        self._clock = clock

    @property
    def stats(self) -> ProcessingStats:
        """The accumulator this processor records into."""
        return self._stats

    @property
    def total_processing_time_ms(self) -> int:
        """Cumulative processing time of every recorded call, in ms."""
        return self._stats.total_processing_time_ms

    def is_supported_image(self, file_name: str | None) -> bool:
        """Report whether a file name's extension can be processed.

        The extension is taken after the last dot, stripped of dots and
        lowercased, then looked up in every format's extension set.

        Args:
            file_name: File name or path.

        Returns:
            True when a registered format lists the extension; False for
            names without an extension.

        Example:
            >>> processor.is_supported_image("photo.PNG")
            True
            >>> processor.is_supported_image("photo")
            False
        """
        if not file_name:
            return False

        ext = os.path.splitext(file_name)[1]
        extension = ext.strip(".").lower()
        if not extension:
            return False

        return any(
            extension in extensions
            for extensions in self._registry.supported_formats().values()
        )

    def process_image(self, query: ProcessImageQuery) -> ProcessImageResult:
        """Run the full transcode pipeline for one query.

        Validation happens before timing starts, so a rejected query adds
        nothing to the stats. From then on every exit path, successful or
        not, releases all working images, closes the caller's source when
        ``dispose_source`` is set and the source is closable, and records
        the elapsed time exactly once. Exceptions are never caught or
        converted.

        Args:
            query: What to transcode and how.

        Returns:
            ProcessImageResult with source and output dimensions, the format
            actually written, this call's duration and an owned BytesIO at
            offset 0.

        Raises:
            InvalidQueryError: If the query or its source is missing.
            UnsupportedSourceTypeError: If the source matches no variant.
            Exception: Anything raised by the codec engine, path resolver or
                post-processor, unchanged.

        Example:
            >>> result = processor.process_image(
            ...     ProcessImageQuery(source=jpeg_800x600, max_width=200)
            ... )
            >>> (result.source_width, result.width, result.height)
            (800, 200, 150)
        """
        validate_query(query)

        start = self._clock()
        elapsed_ms: int | None = None
        success = False

        try:
            with LogContext(file_name=query.file_name), ExitStack() as stack:
                source = coerce_source(query.source)

                image = load_source(self._engine, source, self._path_resolver)
                stack.callback(self._engine.dispose, image)
                logger.debug(
                    "Source decoded",
                    source_type=type(source).__name__,
                    width=image.width,
                    height=image.height,
                    native_format=image.native_format,
                )

                result = ProcessImageResult(
                    query=query,
                    source_width=image.width,
                    source_height=image.height,
                )

                resized = resize_to_fit(
                    self._engine, image, query.max_width, query.max_height
                )
                if resized is not image:
                    stack.callback(self._engine.dispose, resized)

                selection = select_format(
                    query.format,
                    query.quality,
                    self._format_options,
                    self._default_quality,
                )
                encoded = self._engine.encode(resized, selection)

                result.width = resized.width
                result.height = resized.height
                result.file_extension = encoded.file_extension
                result.mime_type = encoded.mime_type

                output: io.BytesIO = encoded.data
                if query.execute_post_processor:
                    output = self._post_processor.post_process(
                        output, query.file_name, encoded.file_extension
                    )
                output.seek(0)

            elapsed_ms = self._elapsed_ms(start)
            result.process_time_ms = elapsed_ms
            result.result = output
            success = True

            logger.info(
                "Image processed",
                file_name=query.file_name,
                source_size=f"{result.source_width}x{result.source_height}",
                size=f"{result.width}x{result.height}",
                mime_type=result.mime_type,
                duration_ms=elapsed_ms,
            )
            return result
        finally:
            try:
                if query.dispose_source and is_disposable(query.source):
                    unwrap_source(query.source).close()
            finally:
                if elapsed_ms is None:
                    elapsed_ms = self._elapsed_ms(start)
                self._stats.record(elapsed_ms, success=success)
                if not success:
                    logger.warning(
                        "Image processing failed",
                        file_name=query.file_name,
                        duration_ms=elapsed_ms,
                    )

    def _elapsed_ms(self, start: float) -> int:
        return int((self._clock() - start) * 1000)
