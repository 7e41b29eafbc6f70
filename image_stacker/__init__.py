"""Stack images vertically at a common width and export them as JPEG or PNG."""

from .controllers import MergeSession, MergeStatus, StatusKind
from .encoder import EncodedImage, OutputFormat
from .pipeline import MergeFailure, MergeSettings, MergeState, MergeSuccess, PipelineController
from .working_set import EntryView, ImageSource, RawFile, WorkingSet

__version__ = "1.0.0"

__all__ = [
    "EncodedImage",
    "EntryView",
    "ImageSource",
    "MergeFailure",
    "MergeSession",
    "MergeSettings",
    "MergeState",
    "MergeStatus",
    "MergeSuccess",
    "OutputFormat",
    "PipelineController",
    "RawFile",
    "StatusKind",
    "WorkingSet",
]
