# workers.py
"""
Background execution of merge requests for the Qt front end.

Merging decodes and resamples every image, which is too slow for the GUI
thread.  :class:`MergeWorker` runs one :meth:`MergeSession.trigger_merge`
call on a ``QThreadPool`` and reports the discriminated result back through
Qt signals, which are delivered on the GUI thread.
"""
import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from .controllers import MergeSession
from .pipeline import MergeSuccess

logger = logging.getLogger("image_stacker.workers")


class MergeWorkerSignals(QObject):
    started = Signal()
    finished = Signal()
    succeeded = Signal(object)  # MergeSuccess
    failed = Signal(str, str)  # message, offending file name ("" when none)


class MergeWorker(QRunnable):
    """Runs a single merge for *session* off the GUI thread."""
    def __init__(self, session: MergeSession):
        super().__init__()
        self.session = session
        self.signals = MergeWorkerSignals()

    def run(self) -> None:
        try:
            self.signals.started.emit()
            result = self.session.trigger_merge()
            if isinstance(result, MergeSuccess):
                self.signals.succeeded.emit(result)
            else:
                self.signals.failed.emit(result.message, result.offending_name or "")
        except Exception as e:
            # trigger_merge reports failures as results; anything here is a bug
            logger.exception("Merge worker crashed: %s", e)
            self.signals.failed.emit(f"Image processing failed: {e}", "")
        finally:
            self.signals.finished.emit()
