import pytest

QtCore = pytest.importorskip("PySide6.QtCore")
pytest.importorskip("PySide6.QtGui")

from media_queue_hub.models import QueueEntry  # noqa: E402
from media_queue_hub.ui.models import QueueTableModel  # noqa: E402

Qt = QtCore.Qt


@pytest.fixture
def model():
    m = QueueTableModel()
    m.refresh(
        [
            QueueEntry(item_id="a", title="A", status="playing", current=True),
            QueueEntry(item_id="b", title="B", status="error", error="yt-dlp download failed (exit 1)"),
        ]
    )
    return m


def test_error_has_its_own_column(model):
    assert model.columnCount() == 4
    assert model.headerData(3, Qt.Horizontal) == "Error"
    assert model.data(model.index(1, 3)) == "yt-dlp download failed (exit 1)"
    assert model.data(model.index(0, 3)) == ""


def test_current_row_is_marked(model):
    assert model.current_row() == 0
    assert model.data(model.index(0, 0)) == "▶"
    assert model.data(model.index(1, 0)) == "2"
