from __future__ import annotations

import signal
import sys
from pathlib import Path

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QHBoxLayout,
    QVBoxLayout,
    QFrame,
    QLabel,
    QPushButton,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QSlider,
    QTableView,
    QPlainTextEdit,
    QHeaderView,
)

from media_queue_hub.config import APP_TITLE
from media_queue_hub.models import QueueEntry, SearchResult
from media_queue_hub.queue_manager import QueueManager
from media_queue_hub.services.youtube import YouTubeSearch
from media_queue_hub.ui.controller import PlayerController, format_time
from media_queue_hub.ui.models import QueueTableModel
from media_queue_hub.ui.style import load_qss


class MainWindow(QMainWindow):
    def __init__(
        self,
        queue_manager: QueueManager,
        search: YouTubeSearch,
        config_file: Path,
    ) -> None:
        super().__init__()

        self.setWindowTitle(APP_TITLE)
        self.resize(1180, 760)
        self.setStyleSheet(load_qss())

        self._seeking = False
        self._build_ui()

        self.controller = PlayerController(
            queue_manager=queue_manager,
            search=search,
            config_file=config_file,
            on_ui_update=self._ui_refresh,
            on_log=self._log,
            on_status_text=self._set_status,
            on_now_playing=self._set_now_playing,
            on_position=self._set_position,
            on_search_results=self._set_results,
        )

        self.vol.blockSignals(True)
        self.vol.setValue(int(self.controller.volume * 100))
        self.vol.blockSignals(False)

        self._wire()

        # ------------------------------------------------------------------
        # MODEL
        # ------------------------------------------------------------------
        self.model = QueueTableModel()
        self.table.setModel(self.model)
        self.table.setSelectionBehavior(QTableView.SelectRows)
        self.table.setSelectionMode(QTableView.SingleSelection)
        self.table.verticalHeader().setVisible(False)

        header = self.table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(1, QHeaderView.Stretch)
        header.setSectionResizeMode(2, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(3, QHeaderView.Interactive)
        header.resizeSection(3, 220)

        # ------------------------------------------------------------------
        # TIMERS
        # ------------------------------------------------------------------
        self.ev_timer = QTimer(self)
        self.ev_timer.timeout.connect(self.controller.process_ui_events)
        self.ev_timer.start(120)

        self.controller.start()

    # -------------------- UI --------------------
    def _build_ui(self) -> None:
        root = QWidget(self)
        self.setCentralWidget(root)

        outer = QHBoxLayout(root)
        outer.setContentsMargins(0, 0, 0, 0)
        outer.setSpacing(0)

        # Sidebar: input + search results
        self.sidebar = QFrame(objectName="Sidebar")
        self.sidebar.setFixedWidth(360)
        s = QVBoxLayout(self.sidebar)
        s.setContentsMargins(18, 18, 18, 18)
        s.setSpacing(12)

        brand = QLabel(APP_TITLE)
        brand.setStyleSheet("font-size:14pt;font-weight:800;color:#fff;")
        s.addWidget(brand)

        card = QFrame(objectName="Card")
        c = QVBoxLayout(card)
        c.setContentsMargins(14, 14, 14, 14)
        c.setSpacing(10)

        c.addWidget(QLabel("URL or search", objectName="Sub"))
        self.input = QLineEdit()
        self.input.setPlaceholderText("https://youtu.be/… or artist - title")
        c.addWidget(self.input)

        row = QHBoxLayout()
        self.btn_search = QPushButton("Search")
        self.btn_add = QPushButton("Add")
        self.btn_play_now = QPushButton("Play now")
        self.btn_play_now.setObjectName("Primary")
        row.addWidget(self.btn_search, 1)
        row.addWidget(self.btn_add, 1)
        row.addWidget(self.btn_play_now, 1)
        c.addLayout(row)

        s.addWidget(card)

        card2 = QFrame(objectName="Card2")
        v = QVBoxLayout(card2)
        v.setContentsMargins(14, 14, 14, 14)
        v.setSpacing(10)
        v.addWidget(QLabel("Results (double click plays)", objectName="Sub"))
        self.results = QListWidget()
        v.addWidget(self.results, 1)
        self.btn_add_result = QPushButton("Add selected")
        v.addWidget(self.btn_add_result)

        v.addWidget(QLabel("Volume", objectName="Sub"))
        self.vol = QSlider(Qt.Horizontal)
        self.vol.setRange(0, 100)
        self.vol.setValue(70)
        v.addWidget(self.vol)

        self.status = QLabel("Idle", objectName="Sub")
        self.status.setWordWrap(True)
        v.addWidget(self.status)

        s.addWidget(card2, 1)
        outer.addWidget(self.sidebar)

        # Main area
        main = QVBoxLayout()
        main.setContentsMargins(18, 18, 18, 18)
        main.setSpacing(12)

        np = QFrame(objectName="Card")
        npl = QVBoxLayout(np)
        npl.setContentsMargins(16, 16, 16, 16)
        npl.setSpacing(6)

        self.now_title = QLabel("Idle", objectName="Title")
        self.now_sub = QLabel("0:00 / 0:00", objectName="Sub")
        npl.addWidget(QLabel("Now Playing", objectName="Sub"))
        npl.addWidget(self.now_title)
        npl.addWidget(self.now_sub)

        self.seek = QSlider(Qt.Horizontal)
        self.seek.setRange(0, 0)
        npl.addWidget(self.seek)

        tr = QHBoxLayout()
        tr.setSpacing(10)
        self.btn_prev = QPushButton("Prev")
        self.btn_play = QPushButton("Play/Pause")
        self.btn_play.setObjectName("Primary")
        self.btn_next = QPushButton("Next")
        tr.addWidget(self.btn_prev)
        tr.addWidget(self.btn_play)
        tr.addWidget(self.btn_next)
        npl.addLayout(tr)

        main.addWidget(np)

        qc = QFrame(objectName="Card")
        qcl = QVBoxLayout(qc)
        qcl.setContentsMargins(16, 16, 16, 16)
        qcl.setSpacing(10)
        qcl.addWidget(QLabel("Queue (double click plays)", objectName="Sub"))
        self.table = QTableView()
        qcl.addWidget(self.table, 1)
        main.addWidget(qc, 1)

        lc = QFrame(objectName="Card2")
        lcl = QVBoxLayout(lc)
        lcl.setContentsMargins(16, 16, 16, 16)
        lcl.setSpacing(10)
        lcl.addWidget(QLabel("Log", objectName="Sub"))
        self.log = QPlainTextEdit()
        self.log.setReadOnly(True)
        self.log.setMaximumBlockCount(600)
        lcl.addWidget(self.log)
        main.addWidget(lc)

        outer.addLayout(main, 1)

    def _wire(self) -> None:
        self.btn_search.clicked.connect(lambda: self.controller.search(self.input.text()))
        self.btn_add.clicked.connect(lambda: self._submit(play=False))
        self.btn_play_now.clicked.connect(lambda: self._submit(play=True))
        self.input.returnPressed.connect(lambda: self._submit(play=True))

        self.results.itemDoubleClicked.connect(lambda it: self._play_result(it, play=True))
        self.btn_add_result.clicked.connect(
            lambda: self._play_result(self.results.currentItem(), play=False)
        )

        self.vol.valueChanged.connect(self._on_volume)
        self.vol.sliderReleased.connect(self.controller.save_config)

        self.seek.sliderPressed.connect(self._seek_pressed)
        self.seek.sliderReleased.connect(self._seek_released)

        self.btn_prev.clicked.connect(self.controller.prev_track)
        self.btn_play.clicked.connect(self.controller.play_pause)
        self.btn_next.clicked.connect(self.controller.next_track)

        self.table.doubleClicked.connect(lambda idx: self.controller.play_index(idx.row()))

    # -------------------- UI helpers --------------------
    def _log(self, msg: str) -> None:
        self.log.appendPlainText(msg)

    def _set_status(self, text: str) -> None:
        self.status.setText(text)

    def _set_now_playing(self, big: str, small: str) -> None:
        self.now_title.setText(big)
        self.now_sub.setText(small)

    def _set_position(self, position: float, duration: float) -> None:
        if self._seeking:
            return
        self.seek.blockSignals(True)
        self.seek.setRange(0, int(duration))
        self.seek.setValue(int(position))
        self.seek.blockSignals(False)

    def _set_results(self, results: list[SearchResult]) -> None:
        self.results.clear()
        for r in results:
            label = f"{r.title} · {r.uploader} ({format_time(r.duration)})"
            it = QListWidgetItem(label)
            it.setData(Qt.UserRole, r)
            self.results.addItem(it)

    def _ui_refresh(self, entries: list[QueueEntry]) -> None:
        self.model.refresh(entries)
        row = self.model.current_row()
        if row >= 0:
            self.table.scrollTo(self.model.index(row, 0))

    # -------------------- actions --------------------
    def _submit(self, *, play: bool) -> None:
        self.controller.submit(self.input.text(), play=play)
        self.input.clear()

    def _play_result(self, item: QListWidgetItem | None, *, play: bool) -> None:
        if item is None:
            return
        result = item.data(Qt.UserRole)
        if isinstance(result, SearchResult):
            self.controller.play_result(result, play=play)

    def _on_volume(self) -> None:
        self.controller.set_volume(float(self.vol.value()) / 100.0)

    def _seek_pressed(self) -> None:
        self._seeking = True

    def _seek_released(self) -> None:
        self._seeking = False
        self.controller.seek(float(self.seek.value()))

    # -------------------- close --------------------
    def closeEvent(self, event) -> None:
        self.ev_timer.stop()
        self.controller.save_config()
        self.controller.close()
        event.accept()


def run_qt(queue: QueueManager, search: YouTubeSearch, config_file: Path) -> None:
    app = QApplication.instance() or QApplication(sys.argv)
    win = MainWindow(queue, search, config_file)

    # let Ctrl+C / SIGTERM close the window through Qt
    signal.signal(signal.SIGINT, lambda *_: win.close())
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, lambda *_: win.close())
    wakeup = QTimer(win)
    wakeup.timeout.connect(lambda: None)
    wakeup.start(250)

    win.show()
    sys.exit(app.exec())
