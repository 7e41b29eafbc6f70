"""Reusable image manipulation operations.

This module centralizes the small pixel helpers shared by the compositing
pipeline and the preview thumbnails.  Functions are intentionally small and
pure to keep them easy to test.
"""

from __future__ import annotations

from PIL import Image

ColorValue = int | tuple[int, ...]

_ALPHA_MODES = {"RGBA", "LA", "PA"}


def has_alpha(image: Image.Image) -> bool:
    """Return ``True`` when ``image`` carries transparency information."""

    if image.mode in _ALPHA_MODES:
        return True
    return image.mode == "P" and "transparency" in image.info


def resize_image(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Resize ``image`` to exactly ``size`` using LANCZOS resampling.

    Returns the original object unchanged when it already has that size.
    """

    if image.size == size:
        return image
    return image.resize(size, Image.Resampling.LANCZOS)


def flatten_onto_background(
    image: Image.Image, background: ColorValue = (255, 255, 255)
) -> Image.Image:
    """Return an RGB copy of ``image`` composited over an opaque ``background``.

    Transparent and semi-transparent pixels blend with the background instead
    of turning black, which is what a bare ``convert("RGB")`` would produce.
    """

    if not has_alpha(image):
        return image if image.mode == "RGB" else image.convert("RGB")

    rgba = image.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, (0, 0), rgba)
    return canvas


def paste_with_alpha(canvas: Image.Image, image: Image.Image, position: tuple[int, int]) -> None:
    """Paste ``image`` onto ``canvas`` at ``position``, honouring its alpha."""

    if has_alpha(image):
        rgba = image.convert("RGBA")
        canvas.paste(rgba, position, rgba)
    else:
        canvas.paste(image.convert(canvas.mode), position)


def make_thumbnail(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Return a copy of ``image`` shrunk to fit within ``size``."""

    thumb = image.copy()
    thumb.thumbnail(size, Image.Resampling.LANCZOS)
    return thumb


__all__ = [
    "has_alpha",
    "resize_image",
    "flatten_onto_background",
    "paste_with_alpha",
    "make_thumbnail",
]
