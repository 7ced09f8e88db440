"""Structured logging for image-transcoder.

Builds on Python's standard logging module with:
- Keyword arguments as structured data (``logger.info("Encoded", width=200)``)
- Human-readable ``key=value`` output or NDJSON for log aggregation
- Per-call context (file name, requested format) via ``LogContext``

Security Note:
    File names and format tokens come from callers. Pass them as keyword
    arguments rather than formatting them into the message so a crafted
    name cannot forge extra log lines.

Example:
    logger = get_logger(__name__)

    with LogContext(file_name="photo.png"):
        logger.info("Image processed", width=200, height=150)

    configure_logging(json_format=True, force=True)
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

#: Name of the package root logger; every module logger hangs below it.
ROOT_LOGGER_NAME = "image_transcoder"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger that turns keyword arguments into structured data.

    Usage:
        logger = get_logger("image_transcoder.processing")
        logger.debug("Source decoded", width=800, height=600)
    """

    def debug(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log debug message with optional structured data kwargs."""
        if self.isEnabledFor(logging.DEBUG):
            self._log_structured(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log info message with optional structured data kwargs."""
        if self.isEnabledFor(logging.INFO):
            self._log_structured(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log warning message with optional structured data kwargs."""
        if self.isEnabledFor(logging.WARNING):
            self._log_structured(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log error message with optional structured data kwargs."""
        if self.isEnabledFor(logging.ERROR):
            self._log_structured(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log critical message with optional structured data kwargs."""
        if self.isEnabledFor(logging.CRITICAL):
            self._log_structured(logging.CRITICAL, msg, args, **kwargs)

    def _log_structured(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any],
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Emit a record whose ``structured_data`` merges context and kwargs.

        The merge order is active ``LogContext`` values first, then explicit
        keyword arguments, so call-site values win over ambient ones.

        Args:
            level: Numeric log level.
            msg: Log message, may contain % placeholders.
            args: Arguments for % formatting.
            exc_info: Exception info as accepted by ``logging.Logger._log``.
            stack_info: Include a stack trace when True.
            stacklevel: Frames to skip when attributing the caller. Two
                extra frames (the level method and this helper) are added.
            extra: Additional LogRecord attributes.
            **kwargs: Structured key-value data.

        Returns:
            None.

        Example:
            >>> with LogContext(file_name="a.png"):
            ...     logger.info("Encoded", mime_type="image/png")
            # ... - INFO - Encoded | file_name=a.png mime_type=image/png
        """
        structured_data = {**_log_context.get(), **kwargs}
        extra = dict(extra) if extra else {}
        extra["structured_data"] = structured_data

        self._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 2,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp - name - level - message | key=value key=value
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Initialize the formatter.

        Args:
            fmt: Format string using LogRecord attributes. Defaults to
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'.
            datefmt: Date format for %(asctime)s.
            include_structured: Append ' | key=value ...' when True.
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, then append its structured data if any.

        Args:
            record: LogRecord, optionally carrying ``structured_data``.

        Returns:
            Formatted line such as
            '... - INFO - Image processed | width=200 height=150'.
        """
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """JSON formatter emitting one object per line.

    Keys: timestamp (UTC ISO 8601), level, logger, message, exception (when
    present) and every structured data key at top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the record to a single JSON line.

        Non-serializable values fall back to ``str()``.
        """
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Render a structured value for ``key=value`` output.

    None becomes 'null', strings with spaces are quoted, dicts and lists are
    JSON-encoded and everything else goes through ``str()``.

    Example:
        >>> _format_value("my photo.png")
        '"my photo.png"'
        >>> _format_value({"w": 200})
        '{"w": 200}'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Context manager adding key-value pairs to every log line in scope.

    Backed by contextvars, so concurrent transcodes on different threads
    keep separate contexts. Nested contexts merge, inner values winning.

    Usage:
        with LogContext(file_name="photo.jpg"):
            logger.info("Decoding")  # includes file_name
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._token = None

    def __enter__(self) -> LogContext:
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        # Exceptions are never suppressed.
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure logging for the whole image_transcoder package.

    Installs a single stream handler on the ``image_transcoder`` logger and
    stops propagation to the root logger. Idempotent: later calls are
    ignored unless ``force=True``. Safe to call from several threads.

    Args:
        level: Minimum level, int or name ('DEBUG', 'INFO', ...).
        json_format: Use JSONFormatter instead of StructuredFormatter.
        stream: Output stream, default ``sys.stderr``.
        include_structured: Append key=value pairs in text mode.
        force: Drop the existing handler and reconfigure.

    Returns:
        None.

    Example:
        >>> import io
        >>> buffer = io.StringIO()
        >>> configure_logging(stream=buffer, level="DEBUG", force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Internal implementation of configure_logging (assumes lock is held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (assumes lock is held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Return logging to the unconfigured state. Intended for tests."""
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger, configuring defaults on first use.

    Args:
        name: Logger name, normally ``__name__`` of a module inside
            ``image_transcoder``.

    Returns:
        StructuredLogger accepting keyword arguments as structured data.

    Example:
        >>> logger = get_logger("image_transcoder.processing.processor")
        >>> logger.info("Image processed", width=200, height=150)
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)
    if not isinstance(logger, StructuredLogger):
        # Created before setLoggerClass ran; swap in the structured class.
        logger.__class__ = StructuredLogger
    return cast(StructuredLogger, logger)
