from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import QApplication, QLabel, QMainWindow, QVBoxLayout, QWidget

from client import ApiGateway, DemandApi
from demand_board import DemandBoard
from settings import LOG_FILE, ClientSettings, load_settings
from ui.demand_page import DemandPage
from ui.tasks import QtTaskRunner

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ACCENT_COLOR = "#f5b942"
INFO_COLOR = "#a8aec6"
CLOSE_WAIT_MS = 3000

logger = logging.getLogger(__name__)

THEME_STYLESHEET = """
QWidget {
    background-color: #090a0e;
    color: #f5f6fa;
    font-family: 'Segoe UI', sans-serif;
    font-size: 14px;
}

QGroupBox, QMessageBox, QToolTip {
    background-color: #111217;
    border: 1px solid #1c1d23;
    border-radius: 12px;
}

QGroupBox {
    margin-top: 20px;
    padding: 16px;
}

QGroupBox::title {
    color: #f9d24a;
    font-weight: 600;
    subcontrol-origin: margin;
    subcontrol-position: top left;
    margin-left: 14px;
    padding: 2px 10px;
    background-color: #111217;
    border-radius: 8px;
}

QPushButton {
    background-color: #f5b942;
    color: #0b0b0f;
    border-radius: 8px;
    padding: 6px 14px;
    font-weight: 600;
    border: none;
    min-height: 26px;
}

QPushButton:hover {
    background-color: #ffd36a;
}

QPushButton:pressed {
    background-color: #e0a027;
}

QPushButton#deleteButton {
    background-color: #3a1f24;
    color: #ff7a7a;
}

QPushButton#moveUpButton,
QPushButton#moveDownButton {
    padding: 6px 8px;
}

QComboBox,
QSpinBox,
QDateEdit,
QTimeEdit {
    background-color: #15161c;
    border: 1px solid #25262d;
    border-radius: 10px;
    padding: 6px 12px;
    color: #f5f6fa;
    selection-background-color: #f5b942;
    selection-color: #0b0b0f;
}

QComboBox:focus,
QSpinBox:focus,
QDateEdit:focus,
QTimeEdit:focus {
    border: 1px solid #f5b942;
}

QComboBox QAbstractItemView {
    background-color: #0e0f13;
    border: 1px solid #25262d;
    selection-background-color: #f5b942;
    selection-color: #0b0b0f;
    color: #f5f6fa;
}

QTableWidget {
    background-color: #14151c;
    border: 1px solid #1c1d23;
    border-radius: 12px;
    gridline-color: #26272f;
    selection-background-color: #24252e;
    selection-color: #f5f6fa;
}

QTableWidget::item {
    padding: 4px;
    border: none;
}

QHeaderView::section {
    background-color: #0d0e13;
    color: #f5f6fa;
    padding: 8px 12px;
    border: none;
    font-weight: 600;
}

QSplitter::handle {
    background-color: #1c1d23;
    width: 4px;
}
"""


def configure_logging(settings: ClientSettings, log_file: Optional[Path] = LOG_FILE) -> List[logging.Handler]:
    """Send records to stderr and, when given, to the log file under app/data.

    Returns the handlers added to the root logger.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    # urllib3 logs every connection at debug level.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
    return handlers


class MainWindow(QMainWindow):
    def __init__(self, settings: ClientSettings, runner: QtTaskRunner) -> None:
        super().__init__()
        self.settings = settings
        self.runner = runner
        self.setWindowTitle("Demand Board")
        self.setMinimumSize(1100, 720)
        self._build_ui()

    def _build_ui(self) -> None:
        content = QWidget()
        layout = QVBoxLayout(content)
        header = QLabel(f"<h1 style='color:{ACCENT_COLOR};'>Staffing demand</h1>")
        layout.addWidget(header)
        server_label = QLabel(f"Server: {self.settings.base_url}")
        server_label.setStyleSheet(f"color:{INFO_COLOR};")
        layout.addWidget(server_label)
        self.page = DemandPage()
        layout.addWidget(self.page, 1)
        self.setCentralWidget(content)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.runner.wait_for_done(CLOSE_WAIT_MS)
        event.accept()


def start_session(board: DemandBoard) -> None:
    """Initial loads: the skill selector and the "all" view. The effective view waits for the user."""
    board.load_skills()
    board.load_all()


def launch_app() -> int:
    settings = load_settings()
    configure_logging(settings)
    logger.info("Starting demand board against %s", settings.base_url)

    app = QApplication(sys.argv)
    app.setStyleSheet(THEME_STYLESHEET)

    runner = QtTaskRunner()
    window = MainWindow(settings, runner)
    api = DemandApi(ApiGateway(settings))
    board = DemandBoard(api, window.page, runner, settings)
    window.page.bind(board)
    start_session(board)

    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(launch_app())
