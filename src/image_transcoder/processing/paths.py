"""Resolution of path sources to files on disk.

Path sources may be virtual, rooted at the media directory with a ``~/``
prefix (``~/catalog/photo.jpg``), relative to that directory, or absolute.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

#: Prefix marking a path relative to the configured media root.
VIRTUAL_PREFIX = "~/"


@runtime_checkable
class PathResolver(Protocol):  # pragma: no cover
    """Protocol mapping a path source to a physical file path."""

    def resolve(self, path: str) -> Path:
        """Return the physical path for ``path``."""
        ...


class MediaRootPathResolver(PathResolver):
    """Resolve virtual and relative paths against a media root.

    Without a root, paths are used as given (relative to the working
    directory) and the virtual prefix is rejected.

    Example:
        >>> resolver = MediaRootPathResolver(Path("/srv/media"))
        >>> resolver.resolve("~/catalog/a.png")
        PosixPath('/srv/media/catalog/a.png')
        >>> resolver.resolve("/tmp/b.png")
        PosixPath('/tmp/b.png')
    """

    def __init__(self, media_root: Path | str | None = None) -> None:
        self.media_root = Path(media_root) if media_root is not None else None

    def resolve(self, path: str) -> Path:
        """Map ``path`` to a file path.

        Args:
            path: Virtual (``~/...``), relative or absolute path.

        Returns:
            Physical path. The file's existence is not checked; decoding
            reports a missing file.

        Raises:
            ValueError: For a virtual path when no media root is set.
        """
        if path.startswith(VIRTUAL_PREFIX):
            if self.media_root is None:
                raise ValueError(
                    f"Virtual path '{path}' requires a configured media root"
                )
            return self.media_root / path[len(VIRTUAL_PREFIX) :]

        physical = Path(path)
        if self.media_root is not None and not physical.is_absolute():
            return self.media_root / physical
        return physical
