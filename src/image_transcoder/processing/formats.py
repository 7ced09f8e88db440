"""Output format selection.

Maps a requested format token to encoder parameters through a table, so a
new output format is one more table entry. Tokens the table does not know
are ignored: the engine then keeps the source's native format.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from image_transcoder.codecs.engine import EncodeFormat
from image_transcoder.observability.logging import get_logger

logger = get_logger(__name__)

#: Quality used when a format is requested without one.
DEFAULT_QUALITY = 90


@dataclass(frozen=True)
class FormatOptions:
    """Encoder parameters for one output format, minus quality."""

    token: str
    codec_format: str
    extension: str
    mime_type: str
    indexed: bool = False


def build_format_options(png_indexed: bool = True) -> Mapping[str, FormatOptions]:
    """Build the ``{token: FormatOptions}`` table.

    Args:
        png_indexed: Encode PNG output with a 256-color palette.

    Returns:
        Read-only mapping covering jpg, jpeg, png, gif and webp.

    Example:
        >>> build_format_options(png_indexed=False)["png"].indexed
        False
    """
    jpeg = FormatOptions("jpeg", "JPEG", "jpg", "image/jpeg")
    return MappingProxyType(
        {
            "jpg": jpeg,
            "jpeg": jpeg,
            "png": FormatOptions(
                "png", "PNG", "png", "image/png", indexed=png_indexed
            ),
            "gif": FormatOptions("gif", "GIF", "gif", "image/gif"),
            "webp": FormatOptions("webp", "WEBP", "webp", "image/webp"),
        }
    )


DEFAULT_FORMAT_OPTIONS: Mapping[str, FormatOptions] = build_format_options()


def select_format(
    requested: str | None,
    quality: int | None = None,
    options: Mapping[str, FormatOptions] = DEFAULT_FORMAT_OPTIONS,
    default_quality: int = DEFAULT_QUALITY,
) -> EncodeFormat | None:
    """Resolve a requested format token to encoder parameters.

    Matching is case-insensitive. An absent, empty or unrecognized token
    yields None, which tells the engine to keep the native format; an
    unrecognized token is not an error.

    Args:
        requested: Format token from the query.
        quality: Requested quality, or None for ``default_quality``.
        options: Token table.
        default_quality: Quality used when ``quality`` is None.

    Returns:
        EncodeFormat, or None for the native-format fallback.

    Example:
        >>> select_format("JPG").mime_type
        'image/jpeg'
        >>> select_format("JPG").quality
        90
        >>> select_format("bogus") is None
        True
    """
    if not requested:
        return None

    token = requested.strip().lower()
    selected = options.get(token)
    if selected is None:
        # TODO: decide with product owners whether unknown tokens should fail.
        logger.debug("Unrecognized output format, keeping native", requested=token)
        return None

    return EncodeFormat(
        token=selected.token,
        codec_format=selected.codec_format,
        extension=selected.extension,
        mime_type=selected.mime_type,
        quality=default_quality if quality is None else quality,
        indexed=selected.indexed,
    )
