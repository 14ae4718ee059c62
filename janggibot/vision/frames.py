"""Pixel-level frame comparisons used for anomaly detection."""

from __future__ import annotations

from PIL import Image, ImageChops, ImageStat


def frame_difference(first: Image.Image, second: Image.Image) -> float:
    """Mean absolute pixel difference between two images, in [0, 1].

    Images of different sizes are compared after resizing ``second`` to
    the size of ``first``.
    """
    a = first.convert("L")
    b = second.convert("L")
    if a.size != b.size:
        b = b.resize(a.size)
    diff = ImageChops.difference(a, b)
    return ImageStat.Stat(diff).mean[0] / 255.0


def template_similarity(
    image: Image.Image,
    template: Image.Image,
    region: tuple[int, int, int, int],
) -> float:
    """Similarity in [0, 1] between ``template`` and a region of ``image``.

    Args:
        image: Full frame.
        template: Expected appearance of the region.
        region: (x, y, width, height) of the region in ``image``.

    Returns:
        1.0 for identical pixels, 0.0 when the region lies outside the image.
    """
    x, y, width, height = region
    img_w, img_h = image.size
    if x >= img_w or y >= img_h or width <= 0 or height <= 0:
        return 0.0
    crop = image.crop((x, y, min(x + width, img_w), min(y + height, img_h)))
    return 1.0 - frame_difference(template, crop)
