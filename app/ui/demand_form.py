from __future__ import annotations

import datetime
from typing import Optional, Sequence

from PySide6.QtCore import QDate, QTime, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QDateEdit,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QTimeEdit,
    QVBoxLayout,
)

from demand import DAY_OF_WEEK_CODES, DAY_OF_WEEK_LABELS, Creating, DemandForm, FormState, SkillRef

# QDateEdit cannot be empty; Qt's earliest date stands for "no date".
NO_DATE = QDate(1752, 9, 14)
UNSPECIFIED_SKILL = "Unspecified"
INFO_COLOR = "#a8aec6"


def qdate_from_date(value: Optional[datetime.date]) -> QDate:
    if value is None:
        return NO_DATE
    return QDate(value.year, value.month, value.day)


def date_from_qdate(value: QDate) -> Optional[datetime.date]:
    if not value.isValid() or value == NO_DATE:
        return None
    return datetime.date(value.year(), value.month(), value.day())


def _to_qtime(value: str) -> QTime:
    parsed = QTime.fromString(value[:5], "HH:mm")
    return parsed if parsed.isValid() else QTime(0, 0)


def build_optional_date_edit() -> QDateEdit:
    """Date picker whose blank state reads back as ``None``."""
    edit = QDateEdit()
    edit.setCalendarPopup(True)
    edit.setDisplayFormat("yyyy-MM-dd")
    edit.setMinimumDate(NO_DATE)
    edit.setSpecialValueText(" ")
    edit.setDate(NO_DATE)
    return edit


class DemandFormPanel(QGroupBox):
    """Create/edit form. Its labels follow the edit session it was last given."""

    submit_requested = Signal()
    cancel_requested = Signal()

    def __init__(self, parent=None) -> None:
        super().__init__("Add demand", parent)
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        self.hint_label = QLabel()
        self.hint_label.setStyleSheet(f"color:{INFO_COLOR};")
        self.hint_label.setWordWrap(True)
        self.hint_label.setVisible(False)
        layout.addWidget(self.hint_label)

        form = QFormLayout()

        date_row = QHBoxLayout()
        self.date_edit = build_optional_date_edit()
        self.date_edit.setToolTip("Leave blank for a weekday template.")
        date_row.addWidget(self.date_edit)
        clear_date = QPushButton("Clear")
        clear_date.clicked.connect(lambda: self.date_edit.setDate(NO_DATE))
        date_row.addWidget(clear_date)
        form.addRow("Date", date_row)

        self.day_combo = QComboBox()
        self.day_combo.addItem("", None)
        for code in DAY_OF_WEEK_CODES:
            self.day_combo.addItem(DAY_OF_WEEK_LABELS[code], code)
        form.addRow("Day of week", self.day_combo)

        time_row = QHBoxLayout()
        self.start_time = QTimeEdit()
        self.start_time.setDisplayFormat("HH:mm")
        time_row.addWidget(self.start_time)
        self.end_time = QTimeEdit()
        self.end_time.setDisplayFormat("HH:mm")
        time_row.addWidget(self.end_time)
        form.addRow("Time", time_row)

        self.seats_spin = QSpinBox()
        self.seats_spin.setRange(1, 999)
        form.addRow("Required", self.seats_spin)

        self.skill_combo = QComboBox()
        self.skill_combo.addItem(UNSPECIFIED_SKILL, None)
        form.addRow("Skill", self.skill_combo)
        layout.addLayout(form)

        buttons = QHBoxLayout()
        self.submit_button = QPushButton("Add")
        self.submit_button.setObjectName("submitButton")
        self.submit_button.clicked.connect(self.submit_requested.emit)
        buttons.addWidget(self.submit_button)
        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.setObjectName("cancelButton")
        self.cancel_button.clicked.connect(self.cancel_requested.emit)
        self.cancel_button.setVisible(False)
        buttons.addWidget(self.cancel_button)
        buttons.addStretch()
        layout.addLayout(buttons)

        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        layout.addWidget(self.message_label)

    def set_skills(self, skills: Sequence[SkillRef]) -> None:
        selected = self.skill_combo.currentData()
        self.skill_combo.blockSignals(True)
        self.skill_combo.clear()
        self.skill_combo.addItem(UNSPECIFIED_SKILL, None)
        for skill in skills:
            self.skill_combo.addItem(skill.label, skill.id)
        self.skill_combo.blockSignals(False)
        self._select_skill(selected)

    def _select_skill(self, skill_id) -> None:
        index = self.skill_combo.findData(skill_id) if skill_id is not None else 0
        self.skill_combo.setCurrentIndex(max(index, 0))

    def read_form(self) -> DemandForm:
        return DemandForm(
            date=date_from_qdate(self.date_edit.date()),
            day_of_week=self.day_combo.currentData(),
            start_time=self.start_time.time().toString("HH:mm"),
            end_time=self.end_time.time().toString("HH:mm"),
            required_seats=self.seats_spin.value(),
            skill_id=self.skill_combo.currentData(),
        )

    def apply_state(self, state: FormState) -> None:
        form = state.form
        self.date_edit.setDate(qdate_from_date(form.date))
        day_index = self.day_combo.findData(form.day_of_week) if form.day_of_week else 0
        self.day_combo.setCurrentIndex(max(day_index, 0))
        self.start_time.setTime(_to_qtime(form.start_time))
        self.end_time.setTime(_to_qtime(form.end_time))
        self.seats_spin.setValue(int(form.required_seats))
        self._select_skill(form.skill_id)

        editing = not isinstance(state.session, Creating)
        self.setTitle(f"Edit demand #{state.session.record_id}" if editing else "Add demand")
        self.submit_button.setText("Update" if editing else "Add")
        self.cancel_button.setVisible(editing)
        self.hint_label.setText(state.hint)
        self.hint_label.setVisible(bool(state.hint))
        self.message_label.clear()

    def show_message(self, message: str) -> None:
        self.message_label.setText(message)
