"""Drag-sortable list of staged images."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from PIL import Image
from PySide6.QtCore import QModelIndex, QSize, Qt, Signal
from PySide6.QtGui import QIcon, QImage, QPixmap
from PySide6.QtWidgets import QAbstractItemView, QListWidget, QListWidgetItem

from ..working_set import EntryView

logger = logging.getLogger("image_stacker.widgets.source_list")

SOURCE_ID_ROLE = Qt.UserRole + 1


def drop_row_to_index(start: int, row: int) -> int:
    """Translate a Qt move destination into a working-set ``to_index``.

    Qt reports where the item is inserted *before* it is taken out, whereas
    :meth:`WorkingSet.reorder` expects the position in the shortened list.
    """
    return row - 1 if row > start else row


def pil_to_qpixmap(image: Image.Image) -> QPixmap:
    rgba = image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimage = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format_RGBA8888)
    # copy() detaches the QImage from the Python buffer
    return QPixmap.fromImage(qimage.copy())


class SourceListWidget(QListWidget):
    """Shows the working set and lets the user drag entries into a new order."""

    moveRequested = Signal(int, int)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setDragDropMode(QAbstractItemView.InternalMove)
        self.setDefaultDropAction(Qt.MoveAction)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setIconSize(QSize(64, 64))
        self.setAccessibleName("Images to merge")
        self.model().rowsMoved.connect(self._on_rows_moved)

    def populate(self, entries: Sequence[EntryView]) -> None:
        """Rebuild the list from *entries*."""
        self.blockSignals(True)
        try:
            self.clear()
            for entry in entries:
                item = QListWidgetItem(f"{entry.display_name}\n{entry.byte_size_kb:.1f} KB")
                item.setData(SOURCE_ID_ROLE, entry.id)
                item.setToolTip(entry.display_name)
                icon = self._preview_icon(entry)
                if icon is not None:
                    item.setIcon(icon)
                self.addItem(item)
        finally:
            self.blockSignals(False)

    def selected_ids(self) -> List[str]:
        return [str(item.data(SOURCE_ID_ROLE)) for item in self.selectedItems()]

    def _preview_icon(self, entry: EntryView) -> Optional[QIcon]:
        try:
            return QIcon(pil_to_qpixmap(entry.preview_handle.image()))
        except (OSError, ValueError) as exc:
            logger.warning("No preview for %s: %s", entry.display_name, exc)
            return None

    def _on_rows_moved(self, _parent: QModelIndex, start: int, end: int, _dest: QModelIndex, row: int) -> None:
        if start != end:
            logger.debug("Ignoring multi-row move %d-%d", start, end)
            return
        to_index = drop_row_to_index(start, row)
        if to_index != start:
            self.moveRequested.emit(start, to_index)
