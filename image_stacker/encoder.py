"""Serialization of a finished composite to JPEG or PNG bytes."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union

from PIL import Image

from utils.image_operations import flatten_onto_background

from . import config
from .errors import EncodeError

logger = logging.getLogger("image_stacker.encoder")


class OutputFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"

    @classmethod
    def parse(cls, value: Union["OutputFormat", str]) -> "OutputFormat":
        """Accept an ``OutputFormat`` or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported output format: {value!r}") from None

    @property
    def extension(self) -> str:
        return self.value

    @property
    def extensions(self) -> Tuple[str, ...]:
        """Every file extension accepted for this format, preferred first."""
        if self is OutputFormat.JPEG:
            return ("jpeg", "jpg")
        return (self.value,)

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def suggested_filename(self) -> str:
        return f"{config.OUTPUT_BASENAME}.{self.extension}"

    @property
    def pil_format(self) -> str:
        return self.value.upper()


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Encoded output ready to be offered for download."""

    data: bytes = field(repr=False)
    suggested_filename: str
    mime_type: str
    width: int
    height: int

    @property
    def byte_size(self) -> int:
        return len(self.data)


def jpeg_quality() -> int:
    """Map the fractional JPEG quality setting onto Pillow's 1-100 scale."""
    return max(1, min(100, round(config.JPEG_QUALITY * 100)))


def _save_params(fmt: OutputFormat) -> Dict[str, Any]:
    params: Dict[str, Any] = {'format': fmt.pil_format}
    if fmt is OutputFormat.JPEG:
        params.update({
            'quality': jpeg_quality(),
            'optimize': True,
        })
    elif fmt is OutputFormat.PNG:
        params.update({
            'optimize': True,
            'compress_level': config.PNG_COMPRESS_LEVEL,
        })
    return params


def encode(surface: Image.Image, fmt: Union[OutputFormat, str]) -> EncodedImage:
    """
    Encode *surface* in the requested format.

    Args:
        surface: Filled canvas
        fmt: Destination format

    Returns:
        EncodedImage: Bytes plus the matching file name and media type

    Raises:
        EncodeError: If Pillow cannot serialize the surface
    """
    output_format = OutputFormat.parse(fmt)
    image = surface
    if output_format is OutputFormat.JPEG:
        image = flatten_onto_background(surface, config.BACKGROUND_COLOR)

    buffer = io.BytesIO()
    try:
        image.save(buffer, **_save_params(output_format))
    except (OSError, ValueError, KeyError) as exc:
        logger.error("Encoding %s failed: %s", output_format.value, exc)
        raise EncodeError(f"Could not encode the merged image as {output_format.pil_format}: {exc}") from exc
    finally:
        if image is not surface:
            image.close()

    data = buffer.getvalue()
    logger.info(
        "Encoded %dx%d %s (%d bytes)",
        surface.width, surface.height, output_format.value, len(data),
    )
    return EncodedImage(
        data=data,
        suggested_filename=output_format.suggested_filename,
        mime_type=output_format.mime_type,
        width=surface.width,
        height=surface.height,
    )
