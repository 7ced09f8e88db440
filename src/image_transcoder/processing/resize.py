"""Max-fit resizing.

The output fits inside the requested bounding box, keeps the source aspect
ratio and is never larger than the source. A missing or non-positive
maximum leaves that axis unconstrained.
"""

from __future__ import annotations

from image_transcoder.codecs.engine import CodecEngine, WorkingImage


def fit_within(
    width: int,
    height: int,
    max_width: int | None,
    max_height: int | None,
) -> tuple[int, int]:
    """Compute the max-fit target size for an image.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        max_width: Bounding box width; None or <= 0 means unbounded.
        max_height: Bounding box height; None or <= 0 means unbounded.

    Returns:
        (width, height) after fitting. Equal to the source size when no
        bound is set or the source already fits.

    Example:
        >>> fit_within(800, 600, 200, None)
        (200, 150)
        >>> fit_within(100, 100, 500, 500)
        (100, 100)
        >>> fit_within(800, 600, 0, 300)
        (400, 300)
    """
    ratios = [
        limit / side
        for limit, side in ((max_width, width), (max_height, height))
        if limit is not None and limit > 0 and side
    ]
    if not ratios:
        return width, height

    scale = min(ratios)
    if scale >= 1:
        return width, height

    return max(1, round(width * scale)), max(1, round(height * scale))


def resize_to_fit(
    engine: CodecEngine,
    image: WorkingImage,
    max_width: int | None,
    max_height: int | None,
) -> WorkingImage:
    """Resize ``image`` into the bounding box, or return it unchanged.

    Returns:
        A new working image when the size changes (the caller owns both),
        otherwise ``image`` itself.
    """
    if max_width is None and max_height is None:
        return image

    width, height = fit_within(image.width, image.height, max_width, max_height)
    if (width, height) == (image.width, image.height):
        return image
    return engine.resize(image, width, height)
