"""Concurrent, fail-fast decoding of working-set entries."""

from __future__ import annotations

import io
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from utils.image_operations import has_alpha

from . import config
from .errors import DecodeError
from .working_set import ImageSource

logger = logging.getLogger("image_stacker.decoder")


@dataclass(slots=True)
class DecodedImage:
    """
    A decoded source, alive for a single merge run.

    Attributes:
        source_id (str): Id of the working-set entry it came from
        display_name (str): File name, for error reporting
        pixel_width (int): Natural width after EXIF orientation
        pixel_height (int): Natural height after EXIF orientation
        surface (Optional[Image.Image]): Loaded pixels, ``None`` once released
    """

    source_id: str
    display_name: str
    pixel_width: int
    pixel_height: int
    surface: Optional[Image.Image] = field(repr=False)

    @property
    def released(self) -> bool:
        return self.surface is None

    def release(self) -> None:
        """Close the backing surface. Releasing twice is a no-op."""
        if self.surface is not None:
            self.surface.close()
            self.surface = None


def release_all(decoded: Sequence[Optional[DecodedImage]]) -> None:
    """Release every decoded image in *decoded*, skipping ``None`` slots."""
    for image in decoded:
        if image is not None:
            image.release()


def _normalise_mode(image: Image.Image) -> Image.Image:
    target = "RGBA" if has_alpha(image) else "RGB"
    if image.mode == target:
        return image
    converted = image.convert(target)
    image.close()
    return converted


def decode_source(source: ImageSource) -> DecodedImage:
    """Decode one source into a fully loaded surface.

    The raw bytes are exposed to Pillow through a transient buffer that is
    closed as soon as the pixels are loaded.
    """
    try:
        with io.BytesIO(source.raw_bytes) as buffer:
            with Image.open(buffer) as opened:
                opened.load()
                oriented = ImageOps.exif_transpose(opened)
                # exif_transpose hands back the same object when no rotation applies
                surface = oriented.copy() if oriented is opened else oriented
        surface = _normalise_mode(surface)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(source.id, source.display_name, str(exc)) from exc

    width, height = surface.size
    if width <= 0 or height <= 0:
        surface.close()
        raise DecodeError(source.id, source.display_name, "image has no pixels")
    return DecodedImage(
        source_id=source.id,
        display_name=source.display_name,
        pixel_width=width,
        pixel_height=height,
        surface=surface,
    )


class Decoder:
    """Decode a batch of sources in parallel, all or nothing."""

    def __init__(self, max_workers: int = config.MAX_ENTRIES) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be greater than zero")
        self.max_workers = max_workers

    def decode_all(self, sources: Sequence[ImageSource]) -> List[DecodedImage]:
        """
        Decode every source, preserving the order of *sources*.

        Args:
            sources: Ordered working-set snapshot

        Returns:
            List[DecodedImage]: One decoded image per source, same order

        Raises:
            DecodeError: As soon as any source fails; every surface decoded
                so far is released first
        """
        if not sources:
            return []

        workers = min(self.max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="decode") as pool:
            futures: List[Future] = [pool.submit(decode_source, source) for source in sources]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failure: Optional[BaseException] = None
            failed_source: Optional[ImageSource] = None
            for source, future in zip(sources, futures):
                if future in done and future.exception() is not None:
                    failure = future.exception()
                    failed_source = source
                    break
            if failure is not None:
                for future in pending:
                    future.cancel()

        # The pool has shut down, so every non-cancelled future is finished.
        results: List[Optional[DecodedImage]] = []
        for future in futures:
            if future.cancelled() or future.exception() is not None:
                results.append(None)
            else:
                results.append(future.result())

        if failure is not None:
            release_all(results)
            logger.warning("Decode failed: %s", failure)
            if isinstance(failure, DecodeError) or failed_source is None:
                raise failure
            raise DecodeError(failed_source.id, failed_source.display_name, str(failure)) from failure

        logger.debug("Decoded %d image(s)", len(results))
        return [image for image in results if image is not None]
