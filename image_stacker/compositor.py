"""Vertical stacking layout.

Every image is scaled to a common width, keeping its aspect ratio, and the
results are stacked top to bottom in working-set order.  The layout is pure
data so it can be unit tested without touching any pixels.

Scaled heights are rarely whole numbers.  Rounding each one on its own would
let the error pile up over a long stack, so offsets are derived from the
exact running total instead: image *i* starts at ``round(E_i)`` and ends at
``round(E_{i+1})`` where ``E_k`` is the exact height of the first *k*
images.  Neighbouring images therefore always share an edge and the canvas
height is never more than half a pixel away from the exact sum.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Sequence, Tuple

from .decoder import DecodedImage


@dataclass(frozen=True, slots=True)
class Placement:
    """Where one image lands on the canvas."""

    source_id: str
    y_offset: int
    scaled_height: int
    scale: float


@dataclass(frozen=True, slots=True)
class LayoutPlan:
    """Geometry for one merge run."""

    canvas_width: int
    canvas_height: int
    placements: Tuple[Placement, ...]

    def placement_for(self, source_id: str) -> Placement:
        for placement in self.placements:
            if placement.source_id == source_id:
                return placement
        raise KeyError(source_id)


def round_half_up(value: Fraction) -> int:
    """Round to the nearest integer, with .5 always going up."""
    return math.floor(value + Fraction(1, 2))


def layout(decoded: Sequence[DecodedImage], target_width: int) -> LayoutPlan:
    """
    Compute the stacking layout for *decoded* at *target_width*.

    Args:
        decoded: Decoded images in merge order
        target_width: Width of the output canvas in pixels

    Returns:
        LayoutPlan: Canvas size and one placement per image, in order

    Raises:
        ValueError: If *decoded* is empty or any dimension is not positive
    """
    if not decoded:
        raise ValueError("layout requires at least one image")
    if target_width <= 0:
        raise ValueError(f"target_width must be positive (got {target_width})")

    placements: List[Placement] = []
    exact_total = Fraction(0)
    top = 0
    for image in decoded:
        if image.pixel_width <= 0 or image.pixel_height <= 0:
            raise ValueError(f"image {image.source_id} has no pixels")
        scale = Fraction(target_width, image.pixel_width)
        exact_total += image.pixel_height * scale
        bottom = round_half_up(exact_total)
        placements.append(
            Placement(
                source_id=image.source_id,
                y_offset=top,
                scaled_height=bottom - top,
                scale=float(scale),
            )
        )
        top = bottom

    return LayoutPlan(
        canvas_width=target_width,
        canvas_height=max(top, 1),
        placements=tuple(placements),
    )
