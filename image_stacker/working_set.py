"""Ordered, bounded collection of images staged for merging.

:class:`WorkingSet` is UI agnostic so it can be unit tested without a Qt
environment.  Front ends hand it raw files, remove entries by id and move
entries by position; the merge pipeline only ever sees the immutable tuple
returned by :meth:`WorkingSet.snapshot`.
"""

from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from PIL import Image

from utils.image_operations import make_thumbnail
from utils.validation import guess_media_type, is_image_media_type, validate_image_path

from . import config
from .cache import ImageCache, PreviewHandle, get_cache
from .errors import CapacityExceeded

logger = logging.getLogger("image_stacker.working_set")


@dataclass(frozen=True, slots=True)
class RawFile:
    """A file handed over by the picker or drop target."""

    name: str
    data: bytes
    media_type: str

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "RawFile":
        """Read *path* from disk, guessing its media type from the extension.

        Any readable file is accepted; non-image media types are dropped later
        by :meth:`WorkingSet.add_sources`.
        """
        safe_path = validate_image_path(path)
        return cls(
            name=safe_path.name,
            data=safe_path.read_bytes(),
            media_type=guess_media_type(safe_path),
        )


@dataclass(frozen=True, slots=True)
class ImageSource:
    """
    An image admitted to the working set.

    Attributes:
        id (str): Stable identifier assigned at insertion
        display_name (str): Original file name, for messages only
        byte_size (int): Size of the raw payload
        raw_bytes (bytes): Encoded image payload
        mime_kind (str): Declared media type, always ``image/*``
    """

    id: str
    display_name: str
    byte_size: int
    raw_bytes: bytes = field(repr=False)
    mime_kind: str

    @property
    def byte_size_kb(self) -> float:
        return round(self.byte_size / 1024, 1)


@dataclass(frozen=True, slots=True)
class EntryView:
    """What a front end needs to render one entry."""

    id: str
    display_name: str
    byte_size_kb: float
    preview_handle: PreviewHandle


def _build_preview(raw_bytes: bytes) -> Image.Image:
    with Image.open(io.BytesIO(raw_bytes)) as img:
        img.load()
        return make_thumbnail(img, config.PREVIEW_SIZE)


class WorkingSet:
    """Maintain the ordered list of images that will be stacked."""

    def __init__(
        self,
        *,
        max_entries: int = config.MAX_ENTRIES,
        preview_cache: Optional[ImageCache] = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be greater than zero")
        self.max_entries = max_entries
        self._entries: List[ImageSource] = []
        self._previews: Dict[str, PreviewHandle] = {}
        self._preview_cache = preview_cache if preview_cache is not None else get_cache()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _release_preview(self, source_id: str) -> None:
        handle = self._previews.pop(source_id, None)
        if handle is not None:
            handle.revoke()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def add_sources(self, raw_files: Iterable[RawFile]) -> List[ImageSource]:
        """Append the image files from *raw_files* in the order received.

        Files whose media type is not ``image/*`` are skipped silently.  When
        the admitted images would not fit, :class:`CapacityExceeded` is raised
        and the set is left untouched.
        """
        admitted = [f for f in raw_files if is_image_media_type(f.media_type)]
        if len(self._entries) + len(admitted) > self.max_entries:
            logger.warning(
                "Rejected batch of %d image(s); %d already staged (limit %d)",
                len(admitted), len(self._entries), self.max_entries,
            )
            raise CapacityExceeded(len(self._entries) + len(admitted), self.max_entries)

        added: List[ImageSource] = []
        for raw in admitted:
            data = bytes(raw.data)
            source = ImageSource(
                id=uuid.uuid4().hex,
                display_name=raw.name,
                byte_size=len(data),
                raw_bytes=data,
                mime_kind=raw.media_type,
            )
            self._entries.append(source)
            self._previews[source.id] = PreviewHandle(
                f"preview:{source.id}",
                self._preview_cache,
                lambda payload=data: _build_preview(payload),
            )
            added.append(source)
        if added:
            logger.info("Added %d image(s); working set now holds %d", len(added), len(self._entries))
        return added

    def remove(self, source_id: str) -> bool:
        """Remove the entry with *source_id*; a missing id is not an error."""
        index = self.index_of(source_id)
        if index is None:
            return False
        removed = self._entries.pop(index)
        self._release_preview(removed.id)
        logger.info("Removed %s from working set", removed.display_name)
        return True

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move the entry at *from_index* so it ends up at *to_index*.

        *to_index* refers to the sequence after the entry has been taken
        out, which makes this a single-item move rather than a swap.
        """
        size = len(self._entries)
        if not 0 <= from_index < size:
            raise IndexError(f"from_index {from_index} out of range for {size} entries")
        if not 0 <= to_index < size:
            raise IndexError(f"to_index {to_index} out of range for {size} entries")
        if from_index == to_index:
            return
        moved = self._entries.pop(from_index)
        self._entries.insert(to_index, moved)
        logger.debug("Moved %s from %d to %d", moved.display_name, from_index, to_index)

    def snapshot(self) -> Tuple[ImageSource, ...]:
        """Return a point-in-time copy of the current order."""
        return tuple(self._entries)

    def clear(self) -> None:
        """Drop every entry and release all preview handles."""
        for source_id in list(self._previews):
            self._release_preview(source_id)
        self._entries.clear()

    def views(self) -> List[EntryView]:
        """Return render data for every entry, in merge order."""
        return [
            EntryView(
                id=source.id,
                display_name=source.display_name,
                byte_size_kb=source.byte_size_kb,
                preview_handle=self._previews[source.id],
            )
            for source in self._entries
        ]

    def index_of(self, source_id: str) -> Optional[int]:
        for index, source in enumerate(self._entries):
            if source.id == source_id:
                return index
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ImageSource]:
        return iter(self.snapshot())
