"""Format capability registries.

A registry answers one question: which file extensions can be processed.
Extensions are stored lowercase without the leading dot, grouped per
format the way imaging libraries describe them (``{"JPEG": {"jpg",
"jpeg", "jfif", ...}, ...}``).

Registries are built once and then only read, so one instance can be
shared by every concurrent pipeline call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from PIL import Image

__all__ = [
    "OPENCV_FORMATS",
    "FormatRegistry",
    "PillowFormatRegistry",
    "StaticFormatRegistry",
]


#: Extensions cv2.imdecode reads in every opencv-python build.
OPENCV_FORMATS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "JPEG": ("jpg", "jpeg", "jpe"),
        "PNG": ("png",),
        "WEBP": ("webp",),
        "BMP": ("bmp", "dib"),
        "TIFF": ("tif", "tiff"),
    }
)


@runtime_checkable
class FormatRegistry(Protocol):  # pragma: no cover
    """Protocol for the supported-format lookup."""

    def supported_formats(self) -> Mapping[str, frozenset[str]]:
        """Return ``{format name: extensions without dot, lowercase}``."""
        ...


def _normalize(extensions: Iterable[str]) -> frozenset[str]:
    return frozenset(ext.strip().lstrip(".").lower() for ext in extensions if ext)


class StaticFormatRegistry(FormatRegistry):
    """Registry over a fixed format table, plus optional extras.

    Args:
        formats: ``{format: extensions}`` table.
        extra_formats: Additional entries merged over ``formats``; a format
            present in both gets the union of its extensions.

    Example:
        >>> registry = StaticFormatRegistry({"PNG": ["png"], "JPEG": [".JPG"]})
        >>> registry.supported_formats()["JPEG"]
        frozenset({'jpg'})
    """

    def __init__(
        self,
        formats: Mapping[str, Iterable[str]],
        extra_formats: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        merged: dict[str, frozenset[str]] = {}
        for table in (formats, extra_formats or {}):
            for name, exts in table.items():
                key = name.upper()
                merged[key] = merged.get(key, frozenset()) | _normalize(exts)
        self._formats = MappingProxyType(merged)

    def supported_formats(self) -> Mapping[str, frozenset[str]]:
        return self._formats


@lru_cache(maxsize=1)
def _pillow_formats() -> Mapping[str, frozenset[str]]:
    """Collect the extensions of every format Pillow can open."""
    Image.init()
    grouped: dict[str, set[str]] = {}
    for ext, fmt in Image.registered_extensions().items():
        if fmt in Image.OPEN:
            grouped.setdefault(fmt, set()).add(ext)
    return MappingProxyType({fmt: _normalize(exts) for fmt, exts in grouped.items()})


class PillowFormatRegistry(StaticFormatRegistry):
    """Registry of formats Pillow can decode, plus optional extras.

    The Pillow table is computed once per process and cached.

    Args:
        extra_formats: Additional ``{format: extensions}`` entries merged
            over Pillow's table, e.g. for a plugin registered later.

    Example:
        >>> "png" in PillowFormatRegistry().supported_formats()["PNG"]
        True
    """

    def __init__(self, extra_formats: Mapping[str, Iterable[str]] | None = None):
        super().__init__(_pillow_formats(), extra_formats)
