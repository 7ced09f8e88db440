"""Codec engines and format registries.

Exports are resolved lazily via ``__getattr__`` so that importing the
package does not pull in Pillow, NumPy or OpenCV until an engine or
registry is actually used.

Available exports (lazy-loaded):
    CodecEngine, EncodeFormat, EncodedImage, WorkingImage
    PillowCodecEngine, OpenCVCodecEngine
    FormatRegistry, PillowFormatRegistry, StaticFormatRegistry

Example:
    from image_transcoder.codecs import PillowCodecEngine
    engine = PillowCodecEngine()
"""

from __future__ import annotations

__all__ = [
    "CodecEngine",
    "EncodeFormat",
    "EncodedImage",
    "FormatRegistry",
    "OpenCVCodecEngine",
    "PillowCodecEngine",
    "PillowFormatRegistry",
    "StaticFormatRegistry",
    "WorkingImage",
]

_EXPORTS: dict[str, str] = {
    "CodecEngine": "image_transcoder.codecs.engine",
    "EncodeFormat": "image_transcoder.codecs.engine",
    "EncodedImage": "image_transcoder.codecs.engine",
    "WorkingImage": "image_transcoder.codecs.engine",
    "PillowCodecEngine": "image_transcoder.codecs.pillow",
    "OpenCVCodecEngine": "image_transcoder.codecs.opencv",
    "FormatRegistry": "image_transcoder.codecs.registry",
    "PillowFormatRegistry": "image_transcoder.codecs.registry",
    "StaticFormatRegistry": "image_transcoder.codecs.registry",
}


def __getattr__(name: str) -> type:
    """Import an export on first access and cache it in module globals.

    Raises:
        AttributeError: If name is not a public export.

    Example:
        >>> from image_transcoder import codecs
        >>> codecs.PillowCodecEngine  # imports Pillow here
    """
    if name in _EXPORTS:
        import importlib

        value = getattr(importlib.import_module(_EXPORTS[name]), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    """Return public API including not-yet-loaded exports."""
    return [*__all__, "__all__", "__doc__", "__name__", "__file__"]
