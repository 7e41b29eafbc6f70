"""Session controller for the image stacker front end.

This module introduces :class:`MergeSession`, a small service layer that
mediates between UI widgets and the merge pipeline.  It owns the working set
and the output settings, forwards edits, and exposes a single
:meth:`MergeSession.trigger_merge` call whose result the UI can show or
offer as a download.  Nothing here depends on Qt, so alternative front ends
(or tests) can drive a session directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..encoder import OutputFormat
from ..errors import CapacityExceeded, MergeError, MergeInProgress
from ..pipeline import MergeFailure, MergeResult, MergeSettings, MergeState, PipelineController
from ..working_set import EntryView, ImageSource, RawFile, WorkingSet

logger = logging.getLogger("image_stacker.session")


class StatusKind(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


@dataclass(frozen=True)
class MergeStatus:
    """Merge state as shown to the user."""

    kind: StatusKind
    message: Optional[str] = None
    offending_name: Optional[str] = None

    @classmethod
    def from_error(cls, error: MergeError) -> "MergeStatus":
        return cls(StatusKind.ERROR, error.message, error.offending_name)


class MergeSession:
    """Hold the user's working set and settings and run merges on request."""

    def __init__(
        self,
        working_set: Optional[WorkingSet] = None,
        settings: Optional[MergeSettings] = None,
        pipeline: Optional[PipelineController] = None,
    ) -> None:
        self.working_set = working_set if working_set is not None else WorkingSet()
        self.settings = settings if settings is not None else MergeSettings()
        self.pipeline = pipeline if pipeline is not None else PipelineController()
        self._error: Optional[MergeError] = None

    # ------------------------------------------------------------------
    # Working set edits
    # ------------------------------------------------------------------
    def add_sources(self, raw_files: Iterable[RawFile]) -> List[ImageSource]:
        """Add a batch of files; non-images are skipped silently.

        Raises :class:`CapacityExceeded` (and records it as the current
        error) when the batch does not fit.
        """
        self._error = None
        try:
            return self.working_set.add_sources(raw_files)
        except CapacityExceeded as exc:
            self._error = exc
            raise

    def add_paths(self, paths: Sequence[Union[str, Path]]) -> tuple[List[ImageSource], List[str]]:
        """Read image files from disk and add them as one batch.

        Returns the added sources and human-readable messages for any paths
        that could not be read.
        """
        raw_files: List[RawFile] = []
        errors: List[str] = []
        for path in paths:
            try:
                raw_files.append(RawFile.from_path(path))
            except (ValueError, OSError) as exc:
                logger.warning("Skipping invalid image selection %s: %s", path, exc)
                errors.append(f"{path}: {exc}")
        return self.add_sources(raw_files), errors

    def remove_source(self, source_id: str) -> bool:
        return self.working_set.remove(source_id)

    def reorder(self, from_index: int, to_index: int) -> None:
        self.working_set.reorder(from_index, to_index)

    def clear(self) -> None:
        self.working_set.clear()
        self._error = None

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def set_output_width(self, px: int) -> None:
        """Store the requested width; range checks happen at merge time."""
        self.settings.output_width = int(px)

    def set_output_format(self, fmt: Union[OutputFormat, str]) -> None:
        self.settings.output_format = OutputFormat.parse(fmt)

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------
    def trigger_merge(self) -> MergeResult:
        """Run a merge and remember its error, if any, for :attr:`merge_state`."""
        result = self.pipeline.run_merge(self.working_set, self.settings)
        if isinstance(result, MergeFailure):
            # A rejected overlapping request must not mask the running one
            if not isinstance(result.error, MergeInProgress):
                self._error = result.error
        else:
            self._error = None
        return result

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    def entries(self) -> List[EntryView]:
        return self.working_set.views()

    @property
    def merge_state(self) -> MergeStatus:
        if self.pipeline.state is MergeState.RUNNING:
            return MergeStatus(StatusKind.RUNNING)
        if self._error is not None:
            return MergeStatus.from_error(self._error)
        return MergeStatus(StatusKind.IDLE)
