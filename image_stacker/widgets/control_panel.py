"""Control panel widget for the main Image Stacker window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QSpinBox,
)


@dataclass(frozen=True)
class OutputDefaults:
    """Configuration for the output controls."""

    width: int
    width_limits: Tuple[int, int]
    output_format: str
    formats: Tuple[Tuple[str, str], ...] = (("JPEG", "jpeg"), ("PNG", "png"))


class ControlPanel(QFrame):
    """Toolbar that exposes output settings and the merge actions."""

    addImagesRequested = Signal()
    removeRequested = Signal()
    clearRequested = Signal()
    mergeRequested = Signal()
    widthChanged = Signal(int)
    formatChanged = Signal(str)

    # The spin box deliberately accepts values outside the merge range so a
    # half-typed width is kept as-is and rejected only when merging.
    SPIN_RANGE = (0, 9999)

    def __init__(self, *, defaults: OutputDefaults, parent=None) -> None:
        super().__init__(parent)
        self._defaults = defaults

        self.setObjectName("controlPanel")
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        self._build_layout()

    # Public control accessors -------------------------------------------------
    @property
    def width_spin(self) -> QSpinBox:
        return self._width_spin

    @property
    def format_combo(self) -> QComboBox:
        return self._format_combo

    @property
    def merge_button(self) -> QPushButton:
        return self._merge_btn

    def set_busy(self, busy: bool, *, entry_count: int) -> None:
        """Reflect a running merge and the current number of entries."""
        self._merge_btn.setEnabled(not busy and entry_count > 0)
        self._merge_btn.setText("Merging…" if busy else f"Merge {entry_count} image(s)")
        for widget in (self._add_btn, self._remove_btn, self._clear_btn):
            widget.setEnabled(not busy)

    # Layout -------------------------------------------------------------------
    def _build_layout(self) -> None:
        layout = QHBoxLayout(self)
        layout.setContentsMargins(6, 4, 6, 4)
        layout.setSpacing(8)

        low, high = self._defaults.width_limits
        layout.addWidget(QLabel("Width (px):"))
        self._width_spin = QSpinBox()
        self._width_spin.setRange(*self.SPIN_RANGE)
        self._width_spin.setValue(self._defaults.width)
        self._width_spin.setToolTip(f"Output width, {low}-{high} px")
        self._width_spin.setAccessibleName("Output width")
        self._width_spin.valueChanged.connect(self.widthChanged.emit)
        layout.addWidget(self._width_spin)

        layout.addWidget(QLabel("Format:"))
        self._format_combo = QComboBox()
        for label, value in self._defaults.formats:
            self._format_combo.addItem(label, userData=value)
        index = self._format_combo.findData(self._defaults.output_format)
        self._format_combo.setCurrentIndex(max(index, 0))
        self._format_combo.setAccessibleName("Output format")
        self._format_combo.currentIndexChanged.connect(
            lambda _i: self.formatChanged.emit(str(self._format_combo.currentData()))
        )
        layout.addWidget(self._format_combo)

        layout.addStretch(1)

        self._add_btn = QPushButton("Add Images…")
        self._add_btn.clicked.connect(self.addImagesRequested.emit)
        layout.addWidget(self._add_btn)

        self._remove_btn = QPushButton("Remove")
        self._remove_btn.clicked.connect(self.removeRequested.emit)
        layout.addWidget(self._remove_btn)

        self._clear_btn = QPushButton("Clear")
        self._clear_btn.clicked.connect(self.clearRequested.emit)
        layout.addWidget(self._clear_btn)

        self._merge_btn = QPushButton()
        self._merge_btn.setObjectName("mergeButton")
        self._merge_btn.clicked.connect(self.mergeRequested.emit)
        layout.addWidget(self._merge_btn)
        self.set_busy(False, entry_count=0)
