"""Observability for image-transcoder.

Structured logging and processing time statistics.

Example:
    from image_transcoder.observability import LogContext, get_logger

    logger = get_logger(__name__)

    with LogContext(file_name="photo.png"):
        logger.info("Image processed", width=200, height=150)

Statistics Example:
    from image_transcoder.observability import ProcessingStats

    stats = ProcessingStats()
    processor = ImageProcessor(engine, registry, stats=stats)
    processor.process_image(query)

    print(stats.total_processing_time_ms)
"""

from image_transcoder.observability.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)
from image_transcoder.observability.stats import (
    ProcessingStats,
    ProcessingSummary,
)

__all__ = [
    # Logging
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
    # Statistics
    "ProcessingStats",
    "ProcessingSummary",
]
