from __future__ import annotations

import datetime
from functools import partial
from typing import Dict, Optional, Sequence

from PySide6.QtCore import QDate, Qt
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from demand import DemandForm, DemandOrder, DemandRecord, FormState, SkillRef
from demand_board import ALL_VIEW, EFFECTIVE_VIEW, VIEW_TITLES, DemandBoard
from ui.demand_form import DemandFormPanel, NO_DATE, date_from_qdate, build_optional_date_edit
from ui.demand_table import DemandTable


class DemandPage(QWidget):
    """Demand tab: date picker, the two tables and the create/edit form.

    Implements the view side of ``DemandBoard``; call ``bind`` once the
    board exists to wire the widgets to its actions.
    """

    def __init__(self, today: Optional[datetime.date] = None, parent=None) -> None:
        super().__init__(parent)
        self.board: Optional[DemandBoard] = None
        self._today = today or datetime.date.today()
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        toolbar = QHBoxLayout()
        toolbar.addWidget(QLabel("Date"))
        self.date_edit = build_optional_date_edit()
        self.date_edit.setDate(QDate(self._today.year, self._today.month, self._today.day))
        toolbar.addWidget(self.date_edit)
        clear_date = QPushButton("Clear")
        clear_date.clicked.connect(lambda: self.date_edit.setDate(NO_DATE))
        toolbar.addWidget(clear_date)
        self.effective_button = QPushButton("Show effective")
        toolbar.addWidget(self.effective_button)
        self.reload_button = QPushButton("Reload")
        toolbar.addWidget(self.reload_button)
        self.tidy_button = QPushButton("Tidy order")
        self.tidy_button.setToolTip("Sort by weekday, then start and end time.")
        toolbar.addWidget(self.tidy_button)
        toolbar.addStretch()

        toolbar.addWidget(QLabel("Month"))
        self.year_spin = QSpinBox()
        self.year_spin.setRange(2000, 2100)
        self.year_spin.setValue(self._today.year)
        toolbar.addWidget(self.year_spin)
        self.month_spin = QSpinBox()
        self.month_spin.setRange(1, 12)
        self.month_spin.setValue(self._today.month)
        toolbar.addWidget(self.month_spin)
        self.initialize_button = QPushButton("Initialize month")
        self.initialize_button.setToolTip("Replace the month's dated demand with the weekday templates.")
        toolbar.addWidget(self.initialize_button)
        layout.addLayout(toolbar)

        splitter = QSplitter(Qt.Horizontal)
        tables = QWidget()
        tables_layout = QVBoxLayout(tables)
        tables_layout.setContentsMargins(0, 0, 0, 0)
        self.tables: Dict[str, DemandTable] = {}
        self.table_boxes: Dict[str, QGroupBox] = {}
        for target, reorderable in ((ALL_VIEW, True), (EFFECTIVE_VIEW, False)):
            box = QGroupBox(VIEW_TITLES[target])
            box_layout = QVBoxLayout(box)
            table = DemandTable(reorderable=reorderable)
            box_layout.addWidget(table)
            tables_layout.addWidget(box)
            self.tables[target] = table
            self.table_boxes[target] = box
        splitter.addWidget(tables)

        self.form_panel = DemandFormPanel()
        splitter.addWidget(self.form_panel)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)
        layout.addWidget(splitter, 1)

    def bind(self, board: DemandBoard) -> None:
        self.board = board
        self.effective_button.clicked.connect(board.request_effective)
        self.reload_button.clicked.connect(lambda: board.refresh_all(self.current_date()))
        self.tidy_button.clicked.connect(board.tidy)
        self.initialize_button.clicked.connect(
            lambda: board.initialize_month(self.year_spin.value(), self.month_spin.value())
        )
        for target, table in self.tables.items():
            table.delete_requested.connect(board.delete)
            table.edit_requested.connect(partial(board.begin_edit, target))
        all_table = self.tables[ALL_VIEW]
        all_table.move_requested.connect(partial(board.swap, ALL_VIEW))
        all_table.copy_requested.connect(board.copy)
        all_table.reorder_requested.connect(board.submit_reorder)
        self.form_panel.submit_requested.connect(board.submit)
        self.form_panel.cancel_requested.connect(board.cancel_edit)
        self.form_panel.apply_state(FormState(session=board.edit_session, form=board.default_form()))

    # ---------------- BoardView ----------------
    def current_date(self) -> Optional[datetime.date]:
        return date_from_qdate(self.date_edit.date())

    def render_table(self, target: str, title: str, rows: Sequence[DemandRecord]) -> None:
        self.table_boxes[target].setTitle(title)
        self.tables[target].render_table(rows)

    def render_error(self, target: str, title: str, message: str) -> None:
        self.table_boxes[target].setTitle(title)
        self.tables[target].render_error(message)

    def rendered_order(self, target: str) -> DemandOrder:
        return self.tables[target].order

    def alert(self, message: str) -> None:
        QMessageBox.warning(self, "Demand", message)

    def confirm(self, message: str) -> bool:
        return QMessageBox.question(self, "Demand", message) == QMessageBox.Yes

    def set_skill_options(self, skills: Sequence[SkillRef]) -> None:
        self.form_panel.set_skills(skills)

    def read_form(self) -> DemandForm:
        return self.form_panel.read_form()

    def apply_form_state(self, state: FormState) -> None:
        self.form_panel.apply_state(state)

    def show_form_message(self, message: str) -> None:
        self.form_panel.show_message(message)
