from __future__ import annotations

import datetime
import math
from dataclasses import replace
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from demand import (  # noqa: E402
    DOWN,
    UP,
    Creating,
    DemandForm,
    DemandOrder,
    DemandRecord,
    Editing,
    SkillRef,
    begin_edit,
    drop_anchor_index,
    reset_to_create,
    sanitize_order_ids,
)


def _record(record_id: int, **overrides) -> DemandRecord:
    values = {
        "id": record_id,
        "start_time": datetime.time(9, 0),
        "end_time": datetime.time(18, 0),
        "required_seats": 3,
    }
    values.update(overrides)
    return DemandRecord(**values)


def _order(*ids: int) -> DemandOrder:
    return DemandOrder(_record(record_id) for record_id in ids)


def test_neighbor_in_the_middle_and_at_boundaries() -> None:
    order = _order(1, 2, 3)
    assert order.neighbor(2, UP) == 1
    assert order.neighbor(2, DOWN) == 3
    assert order.neighbor(1, UP) is None
    assert order.neighbor(3, DOWN) is None


def test_neighbor_unknown_id_or_direction() -> None:
    order = _order(1, 2)
    assert order.neighbor(99, UP) is None
    with pytest.raises(ValueError):
        order.neighbor(1, "sideways")


def test_move_before_anchor_and_to_end() -> None:
    order = _order(10, 20, 30)
    assert order.move_before(10, 30).ids() == [20, 10, 30]
    assert order.move_before(30, 10).ids() == [30, 10, 20]
    assert order.move_before(10, None).ids() == [20, 30, 10]


def test_move_before_keeps_the_same_records() -> None:
    order = _order(1, 2, 3, 4)
    moved = order.move_before(4, 2)
    assert sorted(moved.ids()) == sorted(order.ids())
    assert moved.ids() == [1, 4, 2, 3]
    # The source batch is never mutated.
    assert order.ids() == [1, 2, 3, 4]


def test_move_before_unknown_id_is_a_no_op() -> None:
    order = _order(1, 2)
    assert order.move_before(5, 1) == order


def test_drop_anchor_index_picks_first_midpoint_below_pointer() -> None:
    midpoints = [20.0, 60.0, 100.0]
    assert drop_anchor_index(midpoints, 5) == 0
    assert drop_anchor_index(midpoints, 20) == 0
    assert drop_anchor_index(midpoints, 61) == 2
    assert drop_anchor_index(midpoints, 140) is None
    assert drop_anchor_index([], 10) is None


def test_sanitize_order_ids_drops_non_positive_and_non_integral_values() -> None:
    values = [3, "7", 0, -2, 4.5, "abc", None, math.nan, math.inf, True, 8.0]
    assert sanitize_order_ids(values) == [3, 7, 8]


def test_request_body_for_weekday_template() -> None:
    form = DemandForm(
        day_of_week="MONDAY",
        start_time="09:00",
        end_time="17:00",
        required_seats="3",
        skill_id="",
    )
    assert form.to_request_body() == {
        "date": None,
        "dayOfWeek": "MONDAY",
        "startTime": "09:00",
        "endTime": "17:00",
        "requiredSeats": 3,
        "skillId": None,
        "active": True,
    }


def test_request_body_for_dated_entry_with_skill() -> None:
    form = DemandForm(
        date=datetime.date(2024, 5, 6),
        start_time="10:00",
        end_time="14:00",
        required_seats=2,
        skill_id="4",
    )
    body = form.to_request_body()
    assert body["date"] == "2024-05-06"
    assert body["dayOfWeek"] is None
    assert body["skillId"] == 4


def test_request_body_rejects_non_numeric_seats() -> None:
    form = DemandForm(start_time="09:00", end_time="10:00", required_seats="many")
    with pytest.raises(ValueError):
        form.to_request_body()


def test_record_from_payload_and_labels() -> None:
    record = DemandRecord.from_payload(
        {
            "id": 12,
            "date": None,
            "dayOfWeek": "FRIDAY",
            "startTime": "08:30:00",
            "endTime": "12:15:00",
            "requiredSeats": 4,
            "skill": {"id": 2, "code": "FLOOR", "name": None},
            "sortOrder": 7,
        }
    )
    assert record.window_label == "08:30 - 12:15"
    assert record.day_label == "Fri"
    assert record.skill.label == "FLOOR"
    assert record.sort_order == 7
    assert record.active is True


def test_skill_label_falls_back_to_id() -> None:
    assert SkillRef(id=5).label == "5"
    assert SkillRef(id=5, name="Kitchen", code="KITCHEN").label == "Kitchen"


def test_begin_edit_populates_form_at_minute_precision() -> None:
    record = _record(
        7,
        day_of_week="TUESDAY",
        start_time=datetime.time(9, 0, 30),
        end_time=datetime.time(17, 45, 59),
        skill=SkillRef(id=3, name="Cashier"),
    )
    state = begin_edit(DemandOrder([record]), 7)
    assert state is not None
    assert state.session == Editing(7)
    assert state.form.start_time == "09:00"
    assert state.form.end_time == "17:45"
    assert state.form.skill_id == 3
    assert state.form.day_of_week == "TUESDAY"
    assert "Update" in state.hint


def test_begin_edit_unknown_record_leaves_state_alone() -> None:
    assert begin_edit(_order(1, 2), 42) is None


def test_reset_to_create_returns_defaults() -> None:
    defaults = DemandForm.defaults(seats=4, start="08:00", end="16:00")
    state = reset_to_create(defaults)
    assert state.session == Creating()
    assert state.session.record_id is None
    assert state.form == defaults
    assert state.hint == ""


def test_default_form_for_a_dated_entry_builds_expected_body() -> None:
    form = replace(DemandForm.defaults(), date=datetime.date(2024, 5, 1))
    assert form.to_request_body() == {
        "date": "2024-05-01",
        "dayOfWeek": None,
        "startTime": "09:00",
        "endTime": "18:00",
        "requiredSeats": 5,
        "skillId": None,
        "active": True,
    }


def test_sanitize_order_ids_keeps_large_ids_exact() -> None:
    big = 2**53 + 1
    assert sanitize_order_ids([big, 5]) == [big, 5]
    assert sanitize_order_ids([str(big), " 7 "]) == [big, 7]
