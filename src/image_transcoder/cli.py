"""CLI entry point for image-transcoder.

Provides the ``image-transcoder`` console script with subcommands:

- ``process``: Resize/reformat one image and write the result
- ``supported``: Check whether file names have a supported extension

Usage::

    # Shrink to at most 200px wide and convert to JPEG
    image-transcoder process photo.png -o thumbs/ --max-width 200 --format jpg

    # Keep the native format, run the post-processor
    image-transcoder process photo.png -o photo.min.png --post-process

    # Check extensions (exit code 1 if any is unsupported)
    image-transcoder supported photo.PNG notes.txt
"""

from __future__ import annotations

import argparse
import logging
import sys
from functools import lru_cache
from pathlib import Path

from image_transcoder.config import (
    CodecBackend,
    ProcessorConfig,
    configure,
    get_processor,
    get_stats,
)
from image_transcoder.errors import TranscodeError
from image_transcoder.observability.logging import configure_logging
from image_transcoder.processing.types import ProcessImageQuery, ProcessImageResult

PROG_NAME = "image-transcoder"


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get the CLI output logger (message-only format).

    Cached to avoid handler duplication on repeated calls.
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger(PROG_NAME)


def _log(message: str, *, emoji: str = "") -> None:
    """Log a user-facing message with an optional emoji prefix.

    Example:
        >>> _log("Wrote thumbs/photo.jpg", emoji="✅")
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _output_path(output: Path, source: Path, result: ProcessImageResult) -> Path:
    """Resolve where to write a result.

    An existing directory (or a path ending in a separator) receives
    ``<source stem>.<result extension>``; anything else is used as is.

    Example:
        >>> _output_path(Path("out/"), Path("a/photo.png"), jpeg_result)
        PosixPath('out/photo.jpg')
    """
    if output.is_dir() or str(output).endswith(("/", "\\")):
        return output / f"{source.stem}.{result.file_extension}"
    return output


def run_process(args: argparse.Namespace) -> int:
    """Execute the ``process`` subcommand.

    Args:
        args: Parsed arguments with source, output, max_width, max_height,
            format, quality, post_process, backend and media_root.

    Returns:
        0 on success, 1 when the image could not be processed.
    """
    configure(
        ProcessorConfig(
            backend=CodecBackend(args.backend),
            media_root=args.media_root,
        )
    )
    processor = get_processor()

    source = Path(args.source)
    query = ProcessImageQuery(
        source=str(source),
        max_width=args.max_width,
        max_height=args.max_height,
        format=args.format,
        quality=args.quality,
        execute_post_processor=args.post_process,
        file_name=source.name,
    )

    try:
        result = processor.process_image(query)
    except (TranscodeError, OSError) as e:
        _log(f"Failed to process {source}: {e}", emoji="❌")
        return 1

    target = _output_path(Path(args.output), source, result)
    if result.result is None:
        _log(f"Failed to process {source}: no output produced", emoji="❌")
        return 1
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(result.result.getvalue())

    _log(
        f"{source} ({result.source_width}x{result.source_height}) -> "
        f"{target} ({result.width}x{result.height}, {result.mime_type}) "
        f"in {result.process_time_ms}ms",
        emoji="✅",
    )
    _log(f"Total processing time: {get_stats().total_processing_time_ms}ms")
    return 0


def run_supported(names: list[str]) -> int:
    """Execute the ``supported`` subcommand.

    Returns:
        0 when every name is supported, 1 otherwise.
    """
    processor = get_processor()
    all_supported = True
    for name in names:
        supported = processor.is_supported_image(name)
        all_supported = all_supported and supported
        _log(f"{name}: {'yes' if supported else 'no'}")
    return 0 if all_supported else 1


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Resize and convert images (JPEG, PNG, GIF, WebP)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Library log level (default: WARNING)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit library logs as JSON lines",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Transcode one image")
    process_parser.add_argument("source", help="Input image path")
    process_parser.add_argument(
        "-o", "--output", required=True, help="Output file or directory"
    )
    process_parser.add_argument("--max-width", type=_positive_int)
    process_parser.add_argument("--max-height", type=_positive_int)
    process_parser.add_argument(
        "--format", help="Output format: jpg, jpeg, png, gif or webp"
    )
    process_parser.add_argument("--quality", type=int, help="Encoder quality 1-100")
    process_parser.add_argument(
        "--post-process",
        action="store_true",
        help="Run the lossless optimizer on the encoded output",
    )
    process_parser.add_argument(
        "--backend",
        default=CodecBackend.PILLOW.value,
        choices=[b.value for b in CodecBackend],
        help="Codec engine (default: pillow)",
    )
    process_parser.add_argument(
        "--media-root",
        type=Path,
        help="Root directory for virtual (~/) and relative paths",
    )

    supported_parser = subparsers.add_parser(
        "supported", help="Check file extensions against supported formats"
    )
    supported_parser.add_argument("names", nargs="+", help="File names to check")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Arguments without the program name; defaults to sys.argv[1:].

    Returns:
        Exit code.

    Raises:
        SystemExit: On --help or argument errors.
    """
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, json_format=args.json_logs, force=True)

    if args.command == "process":
        return run_process(args)
    return run_supported(args.names)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
