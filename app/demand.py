"""Client-side demand records, the ordered list model and the edit session.

Everything here is plain data with no Qt or network dependencies, so the
controller and the widgets share one definition of order and form state.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

DAY_OF_WEEK_CODES = [
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
]
DAY_OF_WEEK_LABELS = {
    "MONDAY": "Mon",
    "TUESDAY": "Tue",
    "WEDNESDAY": "Wed",
    "THURSDAY": "Thu",
    "FRIDAY": "Fri",
    "SATURDAY": "Sat",
    "SUNDAY": "Sun",
}
UP = "up"
DOWN = "down"


def _parse_date(value: Any) -> Optional[datetime.date]:
    if not value:
        return None
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value))


def _parse_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    return datetime.time.fromisoformat(str(value))


def format_minutes(value: datetime.time) -> str:
    """Render a time of day at minute precision, dropping seconds."""
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class SkillRef:
    id: int
    name: Optional[str] = None
    code: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.code or str(self.id)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SkillRef":
        return cls(id=int(payload["id"]), name=payload.get("name"), code=payload.get("code"))


@dataclass(frozen=True)
class DemandRecord:
    id: int
    start_time: datetime.time
    end_time: datetime.time
    required_seats: int
    date: Optional[datetime.date] = None
    day_of_week: Optional[str] = None
    skill: Optional[SkillRef] = None
    sort_order: Optional[int] = None
    active: bool = True

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DemandRecord":
        skill_payload = payload.get("skill")
        sort_order = payload.get("sortOrder")
        active = payload.get("active")
        return cls(
            id=int(payload["id"]),
            date=_parse_date(payload.get("date")),
            day_of_week=payload.get("dayOfWeek") or None,
            start_time=_parse_time(payload["startTime"]),
            end_time=_parse_time(payload["endTime"]),
            required_seats=int(payload.get("requiredSeats") or 0),
            skill=SkillRef.from_payload(skill_payload) if skill_payload else None,
            sort_order=int(sort_order) if sort_order is not None else None,
            active=True if active is None else bool(active),
        )

    @property
    def window_label(self) -> str:
        return f"{format_minutes(self.start_time)} - {format_minutes(self.end_time)}"

    @property
    def day_label(self) -> str:
        if not self.day_of_week:
            return ""
        return DAY_OF_WEEK_LABELS.get(self.day_of_week, self.day_of_week)


class DemandOrder:
    """Immutable ordered batch of records as last rendered in a view."""

    def __init__(self, records: Iterable[DemandRecord] = ()) -> None:
        self._records: Tuple[DemandRecord, ...] = tuple(records)

    def __iter__(self) -> Iterator[DemandRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DemandOrder):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"DemandOrder({list(self.ids())!r})"

    @property
    def records(self) -> Tuple[DemandRecord, ...]:
        return self._records

    def ids(self) -> List[int]:
        return [record.id for record in self._records]

    def index_of(self, record_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return -1

    def find(self, record_id: int) -> Optional[DemandRecord]:
        index = self.index_of(record_id)
        return self._records[index] if index >= 0 else None

    def neighbor(self, record_id: int, direction: str) -> Optional[int]:
        """Id of the adjacent record in ``direction``, or None at the boundary."""
        index = self.index_of(record_id)
        if index < 0:
            return None
        if direction == UP:
            target = index - 1
        elif direction == DOWN:
            target = index + 1
        else:
            raise ValueError(f"Unknown direction: {direction!r}")
        if target < 0 or target >= len(self._records):
            return None
        return self._records[target].id

    def move_before(self, moving_id: int, anchor_id: Optional[int]) -> "DemandOrder":
        moving = self.find(moving_id)
        if moving is None:
            return self
        remaining = [record for record in self._records if record.id != moving_id]
        if anchor_id is None or anchor_id == moving_id:
            insert_at = len(remaining)
        else:
            insert_at = next(
                (index for index, record in enumerate(remaining) if record.id == anchor_id),
                len(remaining),
            )
        remaining.insert(insert_at, moving)
        return DemandOrder(remaining)


def drop_anchor_index(midpoints: Sequence[float], pointer_y: float) -> Optional[int]:
    """Index of the first candidate row whose vertical midpoint is at or below the pointer."""
    for index, midpoint in enumerate(midpoints):
        if pointer_y <= midpoint:
            return index
    return None


def sanitize_order_ids(values: Iterable[Any]) -> List[int]:
    ids: List[int] = []
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                pass
        if isinstance(value, int):
            if value > 0:
                ids.append(value)
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(number) or number <= 0 or not number.is_integer():
            continue
        ids.append(int(number))
    return ids


# Edit session: a tagged variant threaded through the form handlers.


@dataclass(frozen=True)
class Creating:
    @property
    def record_id(self) -> None:
        return None


@dataclass(frozen=True)
class Editing:
    record_id: int


EditSession = Union[Creating, Editing]


@dataclass(frozen=True)
class DemandForm:
    start_time: str
    end_time: str
    required_seats: Any
    date: Optional[datetime.date] = None
    day_of_week: Optional[str] = None
    skill_id: Any = None

    @classmethod
    def defaults(cls, *, seats: int = 5, start: str = "09:00", end: str = "18:00") -> "DemandForm":
        return cls(start_time=start, end_time=end, required_seats=seats)

    @classmethod
    def from_record(cls, record: DemandRecord) -> "DemandForm":
        return cls(
            date=record.date,
            day_of_week=record.day_of_week,
            start_time=format_minutes(record.start_time),
            end_time=format_minutes(record.end_time),
            required_seats=record.required_seats,
            skill_id=record.skill.id if record.skill else None,
        )

    def to_request_body(self) -> Dict[str, Any]:
        skill_value = self.skill_id
        if skill_value is None or str(skill_value).strip() == "":
            skill_id = None
        else:
            skill_id = int(skill_value)
        return {
            "date": self.date.isoformat() if self.date else None,
            "dayOfWeek": self.day_of_week or None,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "requiredSeats": int(self.required_seats),
            "skillId": skill_id,
            "active": True,
        }


@dataclass(frozen=True)
class FormState:
    session: EditSession
    form: DemandForm
    hint: str = ""


def begin_edit(order: DemandOrder, record_id: int) -> Optional[FormState]:
    """Creating/Editing -> Editing(id), populated from the last rendered batch."""
    record = order.find(record_id)
    if record is None:
        return None
    return FormState(
        session=Editing(record.id),
        form=DemandForm.from_record(record),
        hint="Edit mode. Change the fields and press Update.",
    )


def reset_to_create(defaults: DemandForm) -> FormState:
    """Editing(id) -> Creating, with default field values."""
    return FormState(session=Creating(), form=defaults)
