from __future__ import annotations

from PySide6.QtWidgets import QApplication, QMessageBox


def show_error(parent, title: str, text: str) -> None:
    app = QApplication.instance() or QApplication([])  # noqa: F841
    box = QMessageBox(parent)
    box.setWindowTitle(title)
    box.setText(text)
    box.setIcon(QMessageBox.Critical)
    box.setStandardButtons(QMessageBox.Ok)
    box.exec()
