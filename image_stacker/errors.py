"""Error taxonomy for working-set edits and merge runs.

Every failure the merge pipeline can report derives from :class:`MergeError`
so front ends can handle them uniformly.  Each error carries a short,
user-facing ``message``; :class:`DecodeError` additionally names the image
that could not be read so the user knows which entry to remove.
"""

from __future__ import annotations

from typing import Optional


class MergeError(RuntimeError):
    """Base class for all working-set and merge failures."""

    def __init__(self, message: str, *, offending_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.offending_name = offending_name


class CapacityExceeded(MergeError):
    """Raised when adding a batch would push the working set past its limit."""

    def __init__(self, requested: int, limit: int) -> None:
        super().__init__(f"At most {limit} images can be added (requested {requested})")
        self.requested = requested
        self.limit = limit


class ValidationError(MergeError):
    """A merge precondition failed before any work was started."""


class EmptySet(ValidationError):
    """Raised when a merge is triggered with no images."""

    def __init__(self) -> None:
        super().__init__("Select at least one image to merge")


class WidthOutOfRange(ValidationError):
    """Raised when the configured output width is outside the allowed range."""

    def __init__(self, width: int, minimum: int, maximum: int) -> None:
        super().__init__(f"Output width must be between {minimum}px and {maximum}px (got {width})")
        self.width = width
        self.minimum = minimum
        self.maximum = maximum


class UnsupportedFormat(ValidationError):
    """Raised when the configured output format is not JPEG or PNG."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unsupported output format: {value!r}")
        self.value = value


class DecodeError(MergeError):
    """Raised when one source image cannot be decoded."""

    def __init__(self, source_id: str, display_name: str, reason: str = "") -> None:
        message = f"Could not decode image {display_name!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, offending_name=display_name)
        self.source_id = source_id
        self.display_name = display_name


class SurfaceUnavailable(MergeError):
    """Raised when the output canvas cannot be allocated."""


class EncodeError(MergeError):
    """Raised when serializing the finished canvas fails."""


class MergeInProgress(MergeError):
    """Raised when a merge is requested while another one is running."""

    def __init__(self) -> None:
        super().__init__("A merge is already running")


__all__ = [
    "MergeError",
    "CapacityExceeded",
    "ValidationError",
    "EmptySet",
    "WidthOutOfRange",
    "DecodeError",
    "SurfaceUnavailable",
    "EncodeError",
    "MergeInProgress",
]
