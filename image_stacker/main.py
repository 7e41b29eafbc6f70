# main.py
"""
Entry point and main application window for Image Stacker.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Sequence

from PySide6.QtCore import QStandardPaths, QThreadPool, QTimer
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)

from utils.validation import validate_output_path

from . import config
from .controllers import MergeSession, StatusKind
from .encoder import OutputFormat
from .errors import CapacityExceeded
from .pipeline import MergeSuccess
from .widgets.control_panel import ControlPanel, OutputDefaults
from .widgets.source_list import SourceListWidget
from .workers import MergeWorker


def configure_logging() -> logging.Logger:
    """Configure and return the application logger.

    The handler setup is idempotent to avoid duplicate handlers when the module
    is imported multiple times (e.g., in tests). A rotating file handler limits
    on-disk log growth while mirroring output to stdout for developer visibility.
    """

    logger = logging.getLogger(config.LOGGER_NAME)
    if logger.handlers:
        return logger

    level_name = os.environ.get(config.LOG_LEVEL_ENV, "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    )

    log_path = Path(__file__).resolve().parents[1] / config.LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.LOG_MAX_BYTES,
        backupCount=config.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    return logger


logger = logging.getLogger(config.LOGGER_NAME)


def global_exception_handler(exc_type, value, tb):
    logger.error("Uncaught exception", exc_info=(exc_type, value, tb))
    sys.__excepthook__(exc_type, value, tb)


class MainWindow(QMainWindow):
    def __init__(self, session: Optional[MergeSession] = None):
        super().__init__()
        self.setWindowTitle("Image Stacker")
        self.resize(720, 640)
        self.setAcceptDrops(True)

        self.session = session or MergeSession()
        self._worker: Optional[MergeWorker] = None

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(8, 6, 8, 6)
        main_layout.setSpacing(8)

        self.control_panel = ControlPanel(
            defaults=OutputDefaults(
                width=self.session.settings.output_width,
                width_limits=(config.MIN_OUTPUT_WIDTH, config.MAX_OUTPUT_WIDTH),
                output_format=self.session.settings.output_format.value,
            ),
            parent=self,
        )
        main_layout.addWidget(self.control_panel)

        hint = QLabel(
            f"Drop images here or use Add Images. Up to {config.MAX_ENTRIES} images; "
            "drag entries to change the stacking order."
        )
        hint.setWordWrap(True)
        main_layout.addWidget(hint)

        self.source_list = SourceListWidget(self)
        main_layout.addWidget(self.source_list, 1)

        self.status_label = QLabel()
        self.status_label.setObjectName("statusLabel")
        self.status_label.setWordWrap(True)
        main_layout.addWidget(self.status_label)

        self._bind_signals()
        self._create_shortcuts()
        self._refresh()

        logger.info("MainWindow initialized.")

    def _bind_signals(self) -> None:
        panel = self.control_panel
        panel.addImagesRequested.connect(self._add_images)
        panel.removeRequested.connect(self._remove_selected)
        panel.clearRequested.connect(self._clear)
        panel.mergeRequested.connect(self._merge)
        panel.widthChanged.connect(self.session.set_output_width)
        panel.formatChanged.connect(self.session.set_output_format)
        self.source_list.moveRequested.connect(self._move_entry)

    def _create_shortcuts(self):
        QShortcut(QKeySequence("Ctrl+O"), self, activated=self._add_images)
        QShortcut(QKeySequence.Delete, self, activated=self._remove_selected)
        QShortcut(QKeySequence("Ctrl+M"), self, activated=self._merge)
        QShortcut(QKeySequence("Ctrl+Shift+C"), self, activated=self._clear)

    # --- State rendering ---
    def _refresh(self) -> None:
        self.source_list.populate(self.session.entries())
        self.control_panel.set_busy(
            self._worker is not None, entry_count=len(self.session.working_set)
        )
        status = self.session.merge_state
        if status.kind is StatusKind.ERROR:
            self.status_label.setText(status.message or "")
        elif status.kind is StatusKind.RUNNING:
            self.status_label.setText("Merging images…")
        else:
            self.status_label.setText("")

    # --- Working set edits ---
    def _add_images(self):
        exts = [f"*.{e}" for e in config.SUPPORTED_IMAGE_FORMATS]
        files, _ = QFileDialog.getOpenFileNames(
            self,
            "Add Images",
            QStandardPaths.writableLocation(QStandardPaths.PicturesLocation) or "",
            f"Images ({' '.join(exts)})",
        )
        if files:
            self.add_paths(files)

    def add_paths(self, paths: Sequence[str]) -> None:
        if self._worker is not None:
            return
        try:
            _, errors = self.session.add_paths(paths)
        except CapacityExceeded as exc:
            logger.warning("Add rejected: %s", exc.message)
            self._refresh()
            return
        self._refresh()
        if errors:
            details = "\n".join(errors[:3])
            if len(errors) > 3:
                details += f"\n…{len(errors) - 3} more rejected selections."
            QMessageBox.information(self, "Some files skipped", details)

    def _remove_selected(self):
        if self._worker is not None:
            return
        for source_id in self.source_list.selected_ids():
            self.session.remove_source(source_id)
        self._refresh()

    def _clear(self):
        if self._worker is not None:
            return
        self.session.clear()
        self._refresh()

    def _move_entry(self, from_index: int, to_index: int) -> None:
        if self._worker is None:
            self.session.reorder(from_index, to_index)
        # Rebuild once the view has finished its own drop handling
        QTimer.singleShot(0, self._refresh)

    # --- Drag & drop from the file manager ---
    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragEnterEvent(event)

    def dropEvent(self, event):
        urls = event.mimeData().urls()
        if not urls:
            return
        paths = [u.toLocalFile() for u in urls if u.isLocalFile()]
        self.add_paths(paths)
        event.acceptProposedAction()

    # --- Merging ---
    def _merge(self):
        if self._worker is not None:
            return
        worker = MergeWorker(self.session)
        worker.signals.succeeded.connect(self._on_merge_succeeded)
        worker.signals.failed.connect(self._on_merge_failed)
        worker.signals.finished.connect(self._on_merge_finished)
        self._worker = worker
        self._refresh()
        self.status_label.setText("Merging images…")
        QThreadPool.globalInstance().start(worker)

    def _on_merge_succeeded(self, result: MergeSuccess) -> None:
        logger.info("Merged image ready: %s (%d bytes)", result.suggested_filename, len(result.data))
        path = self._select_save_path(result.suggested_filename)
        if not path:
            return
        try:
            Path(path).write_bytes(result.data)
        except OSError as exc:
            logger.error("Save failed: %s", exc)
            QMessageBox.critical(self, "Error", f"Could not save image: {exc}")
            return
        logger.info("Saved merged image to %s", path)

    def _on_merge_failed(self, message: str, offending_name: str) -> None:
        logger.warning("Merge failed: %s", message)
        self.status_label.setText(message)

    def _on_merge_finished(self) -> None:
        self._worker = None
        self._refresh()

    def _select_save_path(self, suggested_filename: str) -> "str | None":
        pictures_dir = (
            QStandardPaths.writableLocation(QStandardPaths.PicturesLocation) or ""
        )
        ext = Path(suggested_filename).suffix.lstrip(".")
        fmt = OutputFormat.parse(ext)
        patterns = " ".join(f"*.{e}" for e in fmt.extensions)
        path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Merged Image",
            str(Path(pictures_dir) / suggested_filename),
            f"{ext.upper()} ({patterns})",
        )
        if not path:
            return None
        if not Path(path).suffix:
            path = f"{path}.{ext}"
        try:
            return str(validate_output_path(path, fmt.extensions))
        except ValueError as exc:
            QMessageBox.warning(self, "Invalid save location", f"Cannot save image: {exc}")
            return None


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    sys.excepthook = global_exception_handler
    app = QApplication(argv if argv is not None else sys.argv)
    app.setStyle("Fusion")
    window = MainWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
