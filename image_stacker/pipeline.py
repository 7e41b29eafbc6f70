"""Merge pipeline: decode, lay out, rasterize and encode in one request.

:class:`PipelineController` is the single entry point a front end calls to
turn the working set into an encoded image.  It never raises for the
expected failure modes; instead :meth:`PipelineController.run_merge` returns
either a :class:`MergeSuccess` or a :class:`MergeFailure`.  Whatever the
outcome, the controller is back in :attr:`MergeState.IDLE` when the call
returns and every decoded surface has been released.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

from PIL import Image

from utils.image_operations import paste_with_alpha, resize_image

from . import config
from .compositor import LayoutPlan, layout
from .decoder import DecodedImage, Decoder, release_all
from .encoder import EncodedImage, OutputFormat, encode
from .errors import (
    EmptySet,
    MergeError,
    MergeInProgress,
    SurfaceUnavailable,
    UnsupportedFormat,
    WidthOutOfRange,
)
from .working_set import WorkingSet

logger = logging.getLogger("image_stacker.pipeline")


class MergeState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(slots=True)
class MergeSettings:
    """User-selected output options.

    ``output_width`` may hold any integer while the user is editing; it is
    only validated when a merge is requested.
    """

    output_width: int = config.DEFAULT_OUTPUT_WIDTH
    output_format: OutputFormat = OutputFormat(config.DEFAULT_OUTPUT_FORMAT)

    def validate(self) -> OutputFormat:
        """Check the settings and return the parsed output format."""
        width = self.output_width
        if (
            isinstance(width, bool)
            or not isinstance(width, int)
            or not config.MIN_OUTPUT_WIDTH <= width <= config.MAX_OUTPUT_WIDTH
        ):
            raise WidthOutOfRange(width, config.MIN_OUTPUT_WIDTH, config.MAX_OUTPUT_WIDTH)
        try:
            return OutputFormat.parse(self.output_format)
        except ValueError:
            raise UnsupportedFormat(self.output_format) from None


@dataclass(frozen=True, slots=True)
class MergeSuccess:
    image: EncodedImage = field(repr=False)
    plan: LayoutPlan = field(repr=False)

    ok = True

    @property
    def data(self) -> bytes:
        return self.image.data

    @property
    def suggested_filename(self) -> str:
        return self.image.suggested_filename

    @property
    def mime_type(self) -> str:
        return self.image.mime_type


@dataclass(frozen=True, slots=True)
class MergeFailure:
    error: MergeError

    ok = False

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def offending_name(self) -> Optional[str]:
        return self.error.offending_name


MergeResult = Union[MergeSuccess, MergeFailure]


def allocate_canvas(width: int, height: int) -> Image.Image:
    """Allocate an opaque white RGB surface of ``width`` x ``height``."""
    if width <= 0 or height <= 0:
        raise SurfaceUnavailable(f"Invalid canvas size {width}x{height}")
    if max(width, height) > config.MAX_CANVAS_DIMENSION:
        raise SurfaceUnavailable(
            f"Merged image would be {width}x{height}px; the limit is "
            f"{config.MAX_CANVAS_DIMENSION}px per side"
        )
    try:
        return Image.new("RGB", (width, height), config.BACKGROUND_COLOR)
    except (MemoryError, ValueError, OSError) as exc:
        raise SurfaceUnavailable(f"Could not allocate a {width}x{height} canvas: {exc}") from exc


def rasterize(plan: LayoutPlan, decoded: Sequence[DecodedImage]) -> Image.Image:
    """Paint *decoded* onto a fresh white canvas following *plan*.

    *decoded* must be in the same order as ``plan.placements``.
    """
    if len(decoded) != len(plan.placements):
        raise ValueError("plan and decoded images are out of step")

    canvas = allocate_canvas(plan.canvas_width, plan.canvas_height)
    try:
        for placement, image in zip(plan.placements, decoded):
            if placement.source_id != image.source_id:
                raise ValueError("plan and decoded images are out of step")
            if placement.scaled_height <= 0:
                logger.debug("Skipping %s: scaled to zero rows", image.display_name)
                continue
            if image.surface is None:
                raise ValueError(f"{image.display_name} was released before drawing")
            scaled = resize_image(image.surface, (plan.canvas_width, placement.scaled_height))
            try:
                paste_with_alpha(canvas, scaled, (0, placement.y_offset))
            finally:
                if scaled is not image.surface:
                    scaled.close()
    except BaseException:
        canvas.close()
        raise
    return canvas


class PipelineController:
    """Run merge requests one at a time and report their outcome."""

    def __init__(self, decoder: Optional[Decoder] = None) -> None:
        self._decoder = decoder or Decoder()
        self._run_lock = threading.Lock()
        self._state = MergeState.IDLE
        self._last_error: Optional[MergeError] = None

    @property
    def state(self) -> MergeState:
        return self._state

    @property
    def last_error(self) -> Optional[MergeError]:
        """Error from the most recent run, cleared when a new run starts."""
        return self._last_error

    @property
    def is_running(self) -> bool:
        return self._state is MergeState.RUNNING

    def run_merge(self, working_set: WorkingSet, settings: MergeSettings) -> MergeResult:
        """Merge the current working set using *settings*."""
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Merge requested while another merge is running")
            return MergeFailure(MergeInProgress())
        try:
            try:
                sources = working_set.snapshot()
                if not sources:
                    raise EmptySet()
                output_format = settings.validate()
            except MergeError as exc:
                logger.info("Merge rejected: %s", exc.message)
                self._last_error = exc
                return MergeFailure(exc)

            self._state = MergeState.RUNNING
            self._last_error = None
            logger.info(
                "Merging %d image(s) at %dpx as %s",
                len(sources), settings.output_width, output_format.value,
            )
            try:
                result = self._execute(sources, settings.output_width, output_format)
            except MergeError as exc:
                logger.error("Merge failed: %s", exc.message)
                self._last_error = exc
                return MergeFailure(exc)
            except Exception as exc:
                logger.exception("Unexpected error while merging")
                error = MergeError(f"Image processing failed: {exc}")
                self._last_error = error
                return MergeFailure(error)
            logger.info(
                "Merge finished: %s %dx%d",
                result.suggested_filename, result.image.width, result.image.height,
            )
            return result
        finally:
            self._state = MergeState.IDLE
            self._run_lock.release()

    def _execute(
        self, sources: Sequence, width: int, output_format: OutputFormat
    ) -> MergeSuccess:
        decoded: List[DecodedImage] = []
        try:
            decoded = self._decoder.decode_all(sources)
            plan = layout(decoded, width)
            canvas = rasterize(plan, decoded)
            # Pixels are on the canvas; the decoded surfaces are no longer needed.
            release_all(decoded)
            try:
                encoded = encode(canvas, output_format)
            finally:
                canvas.close()
            return MergeSuccess(image=encoded, plan=plan)
        finally:
            release_all(decoded)
