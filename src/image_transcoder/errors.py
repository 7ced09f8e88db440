"""Exceptions raised by image-transcoder.

Only failures the pipeline detects itself are defined here. Errors raised
by the codec library or the post-processor propagate to the caller as-is.
"""

from __future__ import annotations


class TranscodeError(Exception):
    """Base exception for transcode pipeline errors."""

    pass


class InvalidQueryError(TranscodeError, ValueError):
    """Raised before any codec work when a query has no usable source."""

    pass


class UnsupportedSourceTypeError(TranscodeError, TypeError):
    """Raised when a source value matches none of the known variants.

    Attributes:
        type_name: Fully-qualified name of the rejected value's type.
    """

    def __init__(self, type_name: str) -> None:
        """Initialize with the offending type name.

        Args:
            type_name: Fully-qualified type name, e.g. 'builtins.int'.

        Example:
            >>> try:
            ...     coerce_source(42)
            ... except UnsupportedSourceTypeError as e:
            ...     e.type_name
            'builtins.int'
        """
        self.type_name = type_name
        super().__init__(f"Invalid source type '{type_name}' in query.")


class CodecError(TranscodeError, ValueError):
    """Raised by a codec backend that reports failure without raising.

    OpenCV signals undecodable input by returning None and failed encodes
    by returning False; the engine turns those into this exception.
    """

    pass
