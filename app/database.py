from __future__ import annotations

import calendar
import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker
from sqlalchemy.types import Time


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
DEMAND_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'demand.db').as_posix()}"
DAY_OF_WEEK_CODES = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]
DEFAULT_SKILLS = [
    ("KITCHEN", "Kitchen"),
    ("FLOOR", "Floor service"),
    ("CASHIER", "Cashier"),
]


class DemandValidationError(ValueError):
    """Request body rejected before touching the database."""


class Base(DeclarativeBase):
    """Metadata for the demand and skill tables living in demand.db."""

    pass


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Skill(Base):
    __tablename__ = "skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class DemandInterval(Base):
    __tablename__ = "demand_intervals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    day_of_week: Mapped[str | None] = mapped_column(String(10), nullable=True)
    start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    required_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    skill_id: Mapped[int | None] = mapped_column(ForeignKey("skills.id"), nullable=True)
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    skill: Mapped[Optional[Skill]] = relationship(lazy="joined")


engine = create_engine(
    DEMAND_DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_database() -> None:
    Base.metadata.create_all(engine)
    with SessionLocal() as session:
        ensure_default_skills(session)


def ensure_default_skills(session) -> None:
    if session.scalar(select(func.count(Skill.id))):
        return
    for code, name in DEFAULT_SKILLS:
        session.add(Skill(code=code, name=name))
    session.commit()


def skill_to_dict(skill: Skill) -> Dict[str, Any]:
    return {
        "id": skill.id,
        "code": skill.code,
        "name": skill.name,
    }


def demand_to_dict(demand: DemandInterval) -> Dict[str, Any]:
    return {
        "id": demand.id,
        "date": demand.date.isoformat() if demand.date else None,
        "dayOfWeek": demand.day_of_week,
        "startTime": demand.start_time.isoformat() if demand.start_time else None,
        "endTime": demand.end_time.isoformat() if demand.end_time else None,
        "requiredSeats": demand.required_seats,
        "skill": (
            {"id": demand.skill.id, "code": demand.skill.code, "name": demand.skill.name}
            if demand.skill
            else None
        ),
        "sortOrder": demand.sort_order,
        "active": demand.active,
    }


def _ordered(statement):
    return statement.order_by(DemandInterval.sort_order.asc(), DemandInterval.id.asc())


def list_skills(session) -> List[Skill]:
    return list(session.scalars(select(Skill).order_by(Skill.id)))


def list_demands(
    session,
    *,
    date: Optional[datetime.date] = None,
    day_of_week: Optional[str] = None,
) -> List[DemandInterval]:
    statement = select(DemandInterval)
    if date is not None:
        statement = statement.where(DemandInterval.date == date)
    elif day_of_week is not None:
        statement = statement.where(DemandInterval.day_of_week == day_of_week)
    return list(session.scalars(_ordered(statement)).unique())


def effective_demands(session, date: datetime.date) -> List[DemandInterval]:
    """Active demand applying to ``date``: dated entries plus matching weekday templates."""
    weekday = DAY_OF_WEEK_CODES[date.weekday()]
    statement = select(DemandInterval).where(
        DemandInterval.active.is_(True),
        (DemandInterval.date == date)
        | (DemandInterval.date.is_(None) & (DemandInterval.day_of_week == weekday)),
    )
    return list(session.scalars(_ordered(statement)).unique())


def max_sort_order(session) -> int:
    return session.scalar(select(func.coalesce(func.max(DemandInterval.sort_order), 0))) or 0


def _parse_time(value: Any, label: str) -> datetime.time:
    if not value:
        raise DemandValidationError(f"{label} is required.")
    try:
        return datetime.time.fromisoformat(str(value))
    except ValueError as exc:
        raise DemandValidationError(f"{label} must be HH:MM.") from exc


def _parse_demand_payload(session, payload: Dict[str, Any]) -> Dict[str, Any]:
    raw_date = payload.get("date")
    raw_day = payload.get("dayOfWeek")
    if raw_date and raw_day:
        raise DemandValidationError("Set either a date or a day of week, not both.")
    if not raw_date and not raw_day:
        raise DemandValidationError("Set a date or a day of week.")
    date_value = None
    if raw_date:
        try:
            date_value = datetime.date.fromisoformat(str(raw_date))
        except ValueError as exc:
            raise DemandValidationError("date must be YYYY-MM-DD.") from exc
    day_value = None
    if raw_day:
        day_value = str(raw_day).upper()
        if day_value not in DAY_OF_WEEK_CODES:
            raise DemandValidationError(f"Unknown day of week: {raw_day}")
    start = _parse_time(payload.get("startTime"), "startTime")
    end = _parse_time(payload.get("endTime"), "endTime")
    if not start < end:
        raise DemandValidationError("Start time must be before end time.")
    try:
        seats = int(payload.get("requiredSeats"))
    except (TypeError, ValueError) as exc:
        raise DemandValidationError("requiredSeats must be a number.") from exc
    if seats < 1:
        raise DemandValidationError("requiredSeats must be at least 1.")
    skill = None
    skill_id = payload.get("skillId")
    if skill_id is not None:
        try:
            skill = session.get(Skill, int(skill_id))
        except (TypeError, ValueError) as exc:
            raise DemandValidationError("skillId must be a number.") from exc
        if not skill:
            raise DemandValidationError("Skill not found.")
    active = payload.get("active")
    return {
        "date": date_value,
        "day_of_week": day_value,
        "start_time": start,
        "end_time": end,
        "required_seats": seats,
        "skill": skill,
        "active": True if active is None else bool(active),
    }


def create_demand(session, payload: Dict[str, Any]) -> DemandInterval:
    values = _parse_demand_payload(session, payload)
    demand = DemandInterval(**values)
    demand.sort_order = max_sort_order(session) + 1
    session.add(demand)
    session.commit()
    session.refresh(demand)
    return demand


def update_demand(session, demand_id: int, payload: Dict[str, Any]) -> Optional[DemandInterval]:
    demand = session.get(DemandInterval, demand_id)
    if not demand:
        return None
    values = _parse_demand_payload(session, payload)
    if payload.get("active") is None:
        values["active"] = demand.active
    for key, value in values.items():
        setattr(demand, key, value)
    session.commit()
    session.refresh(demand)
    return demand


def delete_demand(session, demand_id: int) -> bool:
    demand = session.get(DemandInterval, demand_id)
    if not demand:
        return False
    session.delete(demand)
    session.commit()
    return True


def copy_demand(session, demand_id: int, overrides: Optional[Dict[str, Any]] = None) -> Optional[DemandInterval]:
    source = session.get(DemandInterval, demand_id)
    if not source:
        return None
    overrides = overrides or {}
    payload = {
        "date": source.date.isoformat() if source.date else None,
        "dayOfWeek": source.day_of_week,
        "startTime": source.start_time.isoformat(),
        "endTime": source.end_time.isoformat(),
        "requiredSeats": source.required_seats,
        "skillId": source.skill_id,
        "active": source.active,
    }
    for key, value in overrides.items():
        if key in payload and value is not None:
            payload[key] = value
    if overrides.get("date"):
        payload["dayOfWeek"] = None
    elif overrides.get("dayOfWeek"):
        payload["date"] = None
    return create_demand(session, payload)


def swap_sort_order(session, first_id: int, second_id: int) -> Optional[Dict[str, Any]]:
    first = session.get(DemandInterval, first_id)
    second = session.get(DemandInterval, second_id)
    if not first or not second:
        return None
    first_order = first.sort_order
    second_order = second.sort_order
    if first_order is None or second_order is None:
        highest = max_sort_order(session)
        if first_order is None:
            first_order = highest + 1
        if second_order is None:
            second_order = highest + 2
    first.sort_order = second_order
    second.sort_order = first_order
    session.commit()
    return {
        "a": {"id": first.id, "sortOrder": first.sort_order},
        "b": {"id": second.id, "sortOrder": second.sort_order},
    }


def reorder_demands(session, ordered_ids: Iterable[int]) -> int:
    """Assign 1..n to the listed ids in order; unknown ids are skipped."""
    order = 1
    for demand_id in ordered_ids:
        demand = session.get(DemandInterval, int(demand_id))
        if not demand:
            continue
        demand.sort_order = order
        order += 1
    session.commit()
    return order - 1


def _tidy_key(demand: DemandInterval):
    day_code = demand.day_of_week
    if day_code is None and demand.date is not None:
        day_code = DAY_OF_WEEK_CODES[demand.date.weekday()]
    if day_code is None:
        day_rank = 999
    else:
        # Sunday first, then Monday..Saturday.
        day_rank = (DAY_OF_WEEK_CODES.index(day_code) + 1) % 7
    return (
        day_rank,
        demand.start_time or datetime.time.min,
        demand.end_time or datetime.time.min,
        demand.id,
    )


def tidy_sort_order(session) -> int:
    demands = sorted(session.scalars(select(DemandInterval)).unique(), key=_tidy_key)
    for order, demand in enumerate(demands, start=1):
        demand.sort_order = order
    session.commit()
    return len(demands)


def initialize_month(session, year: int, month: int) -> Dict[str, int]:
    """Replace the month's dated demand with copies of the active weekday templates."""
    if not 1 <= month <= 12:
        raise DemandValidationError("month must be between 1 and 12.")
    start = datetime.date(year, month, 1)
    end = datetime.date(year, month, calendar.monthrange(year, month)[1])
    existing = list(
        session.scalars(
            select(DemandInterval).where(DemandInterval.date >= start, DemandInterval.date <= end)
        ).unique()
    )
    for demand in existing:
        session.delete(demand)
    session.flush()

    templates: Dict[str, List[DemandInterval]] = {code: [] for code in DAY_OF_WEEK_CODES}
    for template in list_demands(session):
        if template.date is None and template.day_of_week and template.active:
            templates[template.day_of_week].append(template)

    next_order = max_sort_order(session) + 1
    created = 0
    day = start
    while day <= end:
        for template in templates[DAY_OF_WEEK_CODES[day.weekday()]]:
            session.add(
                DemandInterval(
                    date=day,
                    day_of_week=None,
                    start_time=template.start_time,
                    end_time=template.end_time,
                    required_seats=template.required_seats,
                    skill_id=template.skill_id,
                    active=True,
                    sort_order=next_order,
                )
            )
            next_order += 1
            created += 1
        day += datetime.timedelta(days=1)
    session.commit()
    return {"year": year, "month": month, "created": created, "deleted": len(existing)}
