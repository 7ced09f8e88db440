"""image-transcoder: resize and convert images with bounded, accounted cost.

Example:
    from image_transcoder.config import get_processor
    from image_transcoder.processing import ProcessImageQuery

    processor = get_processor()
    result = processor.process_image(
        ProcessImageQuery(source=png_bytes, max_width=200, format="webp")
    )
"""

__version__ = "0.1.0"
