from __future__ import annotations

ACCENT = "#e0a030"

# status column text colour, keyed by TrackStatus value
STATUS_COLORS = {
    "pending": "#8a8a8a",
    "downloading": "#6fa8dc",
    "ready": "#d0d0d0",
    "playing": ACCENT,
    "played": "#5c5c5c",
    "error": "#e06666",
}


def load_qss() -> str:
    return f"""
*{{font-family:"Segoe UI";font-size:10pt;}}
QMainWindow{{background:#14161a;}}
QWidget{{color:#e8e8e8;}}
QFrame#Sidebar{{background:#0c0d10;border-right:1px solid #22252b;}}
QFrame#Card{{background:#1b1e23;border:1px solid #2a2e35;border-radius:10px;}}
QFrame#Card2{{background:#17191d;border:1px solid #2a2e35;border-radius:10px;}}
QLabel#Title{{font-size:16pt;font-weight:700;}}
QLabel#Sub{{color:#9aa0a8;}}
QPushButton{{background:#23272e;border:1px solid #2f343c;padding:7px 10px;border-radius:8px;}}
QPushButton:hover{{background:#2c3139;}}
QPushButton:pressed{{background:#353b44;}}
QPushButton#Primary{{background:{ACCENT};color:#111;border:none;font-weight:700;}}
QLineEdit{{background:#101215;border:1px solid #2f343c;border-radius:8px;padding:7px;}}
QLineEdit:focus{{border-color:{ACCENT};}}
QListWidget{{background:#101215;border:1px solid #2a2e35;border-radius:8px;padding:4px;}}
QListWidget::item{{padding:5px;}}
QListWidget::item:selected{{background:{ACCENT};color:#111;}}
QTableView{{background:transparent;border:none;gridline-color:#23262c;}}
QHeaderView::section{{background:#17191d;color:#9aa0a8;padding:6px;border:none;border-bottom:1px solid #2a2e35;}}
QTableView::item{{padding:6px;}}
QTableView::item:selected{{background:#2c3139;}}
QScrollBar:vertical{{background:#101215;width:10px;border:none;}}
QScrollBar::handle:vertical{{background:#2f343c;border-radius:5px;min-height:20px;}}
QSlider::groove:horizontal{{height:4px;background:#2f343c;border-radius:2px;}}
QSlider::sub-page:horizontal{{background:{ACCENT};border-radius:2px;}}
QSlider::handle:horizontal{{background:#e8e8e8;width:12px;margin:-4px 0;border-radius:6px;}}
QPlainTextEdit{{background:#101215;border:1px solid #2a2e35;border-radius:8px;padding:6px;font-family:Consolas,monospace;font-size:9pt;}}
"""
