from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from PySide6.QtCore import QMimeData, QPoint, Qt, Signal
from PySide6.QtGui import QColor, QDrag
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QHBoxLayout,
    QHeaderView,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QWidget,
)

from demand import DOWN, UP, DemandOrder, DemandRecord, drop_anchor_index

DEMAND_MIME_TYPE = "application/x-demand-id"
HANDLE_GLYPH = "≡"
NO_DATA_TEXT = "No data"
MUTED_COLOR = "#a8aec6"
ERROR_COLOR = "#ff7a7a"


class DemandTable(QTableWidget):
    """One demand view ("all" or "effective").

    ``render_table`` always replaces every row, cell widget and per-row handler;
    nothing from a previous render survives it. The rows are derived from
    ``order``, which drag previews update before re-rendering.
    """

    delete_requested = Signal(int)
    edit_requested = Signal(int)
    move_requested = Signal(int, str)
    copy_requested = Signal(int)
    reorder_requested = Signal(list)

    def __init__(self, *, reorderable: bool, parent=None) -> None:
        super().__init__(0, 0, parent)
        self.reorderable = reorderable
        self.order = DemandOrder()
        self._drag_id: Optional[int] = None
        self._drag_origin = QPoint()
        headers = ["Date", "Day", "Time", "Required", "Skill", "Actions"]
        if reorderable:
            headers = [""] + headers
        self.setColumnCount(len(headers))
        self.setHorizontalHeaderLabels(headers)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.verticalHeader().setVisible(False)
        self.verticalHeader().setDefaultSectionSize(40)
        header = self.horizontalHeader()
        header.setStretchLastSection(True)
        for column in range(len(headers) - 1):
            header.setSectionResizeMode(column, QHeaderView.ResizeToContents)
        if reorderable:
            self.setAcceptDrops(True)
            self.viewport().setAcceptDrops(True)

    @property
    def handle_column(self) -> Optional[int]:
        return 0 if self.reorderable else None

    def _first_data_column(self) -> int:
        return 1 if self.reorderable else 0

    # ---------------- rendering ----------------
    def render_table(self, rows: Sequence[DemandRecord]) -> None:
        self.order = DemandOrder(rows)
        self._populate()

    def render_error(self, message: str) -> None:
        self.order = DemandOrder()
        self._show_placeholder(message, ERROR_COLOR)

    def _reset_rows(self) -> None:
        # Dropping the cell widgets disconnects every per-row handler with them.
        self.clearContents()
        self.setRowCount(0)
        self.clearSpans()

    def _show_placeholder(self, text: str, color: str) -> None:
        self._reset_rows()
        self.setRowCount(1)
        item = QTableWidgetItem(text)
        item.setFlags(Qt.ItemIsEnabled)
        item.setForeground(QColor(color))
        self.setItem(0, 0, item)
        self.setSpan(0, 0, 1, self.columnCount())

    def placeholder_text(self) -> Optional[str]:
        if self.order or self.rowCount() != 1:
            return None
        item = self.item(0, 0)
        return item.text() if item else None

    def _populate(self) -> None:
        if not self.order:
            self._show_placeholder(NO_DATA_TEXT, MUTED_COLOR)
            return
        self._reset_rows()
        self.setRowCount(len(self.order))
        first = self._first_data_column()
        for row, record in enumerate(self.order):
            if self.reorderable:
                handle = QTableWidgetItem(HANDLE_GLYPH)
                handle.setTextAlignment(Qt.AlignCenter)
                handle.setToolTip("Drag to reorder")
                handle.setData(Qt.UserRole, record.id)
                self.setItem(row, 0, handle)
            values = [
                record.date.isoformat() if record.date else "",
                record.day_label,
                record.window_label,
                str(record.required_seats),
                record.skill.label if record.skill else "",
            ]
            for offset, value in enumerate(values):
                item = QTableWidgetItem(value)
                item.setData(Qt.UserRole, record.id)
                self.setItem(row, first + offset, item)
            self.setCellWidget(row, first + len(values), self._build_actions(record.id))

    def _build_actions(self, record_id: int) -> QWidget:
        container = QWidget()
        layout = QHBoxLayout(container)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(4)

        delete_button = QPushButton("Delete")
        delete_button.setObjectName("deleteButton")
        delete_button.clicked.connect(lambda: self.delete_requested.emit(record_id))
        layout.addWidget(delete_button)

        if self.reorderable:
            up_button = QPushButton("↑")
            up_button.setObjectName("moveUpButton")
            up_button.clicked.connect(lambda: self.move_requested.emit(record_id, UP))
            layout.addWidget(up_button)

            down_button = QPushButton("↓")
            down_button.setObjectName("moveDownButton")
            down_button.clicked.connect(lambda: self.move_requested.emit(record_id, DOWN))
            layout.addWidget(down_button)

        edit_button = QPushButton("Edit")
        edit_button.setObjectName("editButton")
        edit_button.clicked.connect(lambda: self.edit_requested.emit(record_id))
        layout.addWidget(edit_button)

        if self.reorderable:
            copy_button = QPushButton("Copy")
            copy_button.setObjectName("copyButton")
            copy_button.clicked.connect(lambda: self.copy_requested.emit(record_id))
            layout.addWidget(copy_button)
        layout.addStretch()
        return container

    def row_ids(self) -> List[int]:
        return self.order.ids()

    def action_buttons(self, row: int) -> Dict[str, QPushButton]:
        widget = self.cellWidget(row, self.columnCount() - 1)
        if widget is None:
            return {}
        return {button.objectName(): button for button in widget.findChildren(QPushButton)}

    # ---------------- drag and drop ----------------
    def _record_id_at(self, pos: QPoint) -> Optional[int]:
        index = self.indexAt(pos)
        if not index.isValid():
            return None
        item = self.item(index.row(), index.column())
        value = item.data(Qt.UserRole) if item else None
        return int(value) if value is not None else None

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        self._drag_id = None
        if self.reorderable and event.button() == Qt.LeftButton:
            pos = event.position().toPoint()
            index = self.indexAt(pos)
            # Only the handle column starts a drag.
            if index.isValid() and index.column() == self.handle_column:
                self._drag_id = self._record_id_at(pos)
                self._drag_origin = pos
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._drag_id is None or not (event.buttons() & Qt.LeftButton):
            super().mouseMoveEvent(event)
            return
        distance = (event.position().toPoint() - self._drag_origin).manhattanLength()
        if distance < QApplication.startDragDistance():
            return
        moving_id = self._drag_id
        self._drag_id = None
        mime = QMimeData()
        mime.setData(DEMAND_MIME_TYPE, str(moving_id).encode("ascii"))
        drag = QDrag(self)
        drag.setMimeData(mime)
        drag.exec(Qt.MoveAction)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        self._drag_id = None
        super().mouseReleaseEvent(event)

    @staticmethod
    def _dragged_id(event) -> Optional[int]:
        mime = event.mimeData()
        if not mime.hasFormat(DEMAND_MIME_TYPE):
            return None
        try:
            return int(bytes(mime.data(DEMAND_MIME_TYPE)).decode("ascii"))
        except ValueError:
            return None

    def dragEnterEvent(self, event) -> None:  # type: ignore[override]
        if self.reorderable and self._dragged_id(event) is not None:
            event.acceptProposedAction()
        else:
            event.ignore()

    def preview_drop(self, moving_id: int, pointer_y: float) -> bool:
        """Reinsert the moving row before the first row whose midpoint is below the pointer."""
        candidates = [record_id for record_id in self.order.ids() if record_id != moving_id]
        midpoints: List[float] = []
        for record_id in candidates:
            rect = self.visualRect(self.model().index(self.order.index_of(record_id), 0))
            midpoints.append(rect.top() + rect.height() / 2)
        anchor_index = drop_anchor_index(midpoints, pointer_y)
        anchor_id = candidates[anchor_index] if anchor_index is not None else None
        preview = self.order.move_before(moving_id, anchor_id)
        if preview == self.order:
            return False
        self.order = preview
        self._populate()
        return True

    def dragMoveEvent(self, event) -> None:  # type: ignore[override]
        moving_id = self._dragged_id(event) if self.reorderable else None
        if moving_id is None:
            event.ignore()
            return
        self.preview_drop(moving_id, event.position().y())
        event.acceptProposedAction()

    def dropEvent(self, event) -> None:  # type: ignore[override]
        if not self.reorderable or self._dragged_id(event) is None:
            event.ignore()
            return
        event.acceptProposedAction()
        self.reorder_requested.emit(self.order.ids())


