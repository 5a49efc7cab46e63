from __future__ import annotations

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtGui import QColor

from media_queue_hub.models import QueueEntry
from media_queue_hub.ui.style import STATUS_COLORS


class QueueTableModel(QAbstractTableModel):
    COLS = ("#", "Title", "Status", "Error")

    def __init__(self) -> None:
        super().__init__()
        self.entries: list[QueueEntry] = []

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.entries)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.COLS)

    def headerData(
        self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole
    ):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return self.COLS[section]
        return None

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):
        if not index.isValid():
            return None
        r = index.row()
        c = index.column()
        if r < 0 or r >= len(self.entries):
            return None
        e = self.entries[r]

        if role == Qt.DisplayRole:
            if c == 0:
                return "▶" if e.current else str(r + 1)
            if c == 1:
                return e.title
            if c == 2:
                return e.status
            if c == 3:
                return e.error or ""
        if role == Qt.ForegroundRole and c == 2:
            color = STATUS_COLORS.get(e.status)
            return QColor(color) if color else None
        if role == Qt.ToolTipRole and e.error:
            return e.error
        if role == Qt.TextAlignmentRole:
            if c in (0, 2):
                return int(Qt.AlignCenter)
            return int(Qt.AlignVCenter | Qt.AlignLeft)
        return None

    def refresh(self, entries: list[QueueEntry]) -> None:
        self.beginResetModel()
        self.entries = list(entries)
        self.endResetModel()

    def current_row(self) -> int:
        for i, e in enumerate(self.entries):
            if e.current:
                return i
        return -1
