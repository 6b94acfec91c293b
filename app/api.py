"""Development backend for the demand board.

A small FastAPI app over the SQLite demand database. It speaks the same
``{success, message, data}`` envelope the desktop client expects, so the
client can be run and tested end-to-end without the production server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Ensure sibling absolute imports (e.g., "import database") still resolve.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database  # noqa: E402
from database import (  # noqa: E402
    DAY_OF_WEEK_CODES,
    DemandValidationError,
    copy_demand,
    create_demand,
    delete_demand,
    demand_to_dict,
    effective_demands,
    init_database,
    list_demands,
    list_skills,
    reorder_demands,
    skill_to_dict,
    swap_sort_order,
    tidy_sort_order,
    update_demand,
)
from database import initialize_month as initialize_month_demand  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    yield


app = FastAPI(title="Demand Board API", version="0.1", lifespan=lifespan)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _success(message: Optional[str], data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": True, "message": message, "data": data}),
    )


def _failure(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, "data": None})


def _parse_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise DemandValidationError("date must be YYYY-MM-DD")


@app.get("/api/skills")
def skills(db=Depends(get_db)) -> JSONResponse:
    return _success("Loaded skills", [skill_to_dict(skill) for skill in list_skills(db)])


@app.get("/api/demand")
def demand_list(
    date: Optional[str] = Query(None),
    day_of_week: Optional[str] = Query(None, alias="dayOfWeek"),
    db=Depends(get_db),
) -> JSONResponse:
    try:
        date_value = _parse_date(date) if date else None
    except DemandValidationError as exc:
        return _failure(str(exc))
    day_value = day_of_week.upper() if day_of_week else None
    if day_value and day_value not in DAY_OF_WEEK_CODES:
        return _failure(f"Unknown day of week: {day_of_week}")
    rows = list_demands(db, date=date_value, day_of_week=day_value)
    return _success("Loaded demand", [demand_to_dict(row) for row in rows])


@app.get("/api/demand/effective")
def demand_effective(date: str = Query(...), db=Depends(get_db)) -> JSONResponse:
    try:
        date_value = _parse_date(date)
    except DemandValidationError as exc:
        return _failure(str(exc))
    rows = effective_demands(db, date_value)
    return _success("Loaded effective demand", [demand_to_dict(row) for row in rows])


@app.post("/api/demand")
def demand_create(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    try:
        demand = create_demand(db, payload)
    except DemandValidationError as exc:
        return _failure(str(exc))
    logger.info("Created demand %s", demand.id)
    return _success("Demand created", demand_to_dict(demand), status_code=201)


@app.put("/api/demand/{demand_id}")
def demand_update(demand_id: int, payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    try:
        demand = update_demand(db, demand_id, payload)
    except DemandValidationError as exc:
        return _failure(str(exc))
    if demand is None:
        return _failure("Demand not found", status_code=404)
    return _success("Demand updated", demand_to_dict(demand))


@app.delete("/api/demand/{demand_id}")
def demand_delete(demand_id: int, db=Depends(get_db)) -> JSONResponse:
    if not delete_demand(db, demand_id):
        return _failure("Demand not found", status_code=404)
    return _success("Demand deleted")


@app.post("/api/demand/swap")
def demand_swap(a: int = Query(...), b: int = Query(...), db=Depends(get_db)) -> JSONResponse:
    result = swap_sort_order(db, a, b)
    if result is None:
        return _failure("One or both demands were not found", status_code=404)
    return _success("Order swapped", result)


@app.post("/api/demand/reorder")
def demand_reorder(ordered_ids: List[int] = Body(...), db=Depends(get_db)) -> JSONResponse:
    if not ordered_ids:
        return _failure("The id list is empty")
    reorder_demands(db, ordered_ids)
    return _success("Order updated")


@app.post("/api/demand/sort")
def demand_tidy(db=Depends(get_db)) -> JSONResponse:
    tidy_sort_order(db)
    return _success("Order tidied")


@app.post("/api/demand/monthly/initialize")
def demand_initialize_month(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    try:
        year = int(payload.get("year"))
        month = int(payload.get("month"))
    except (TypeError, ValueError):
        return _failure("Specify year and month")
    try:
        meta = initialize_month_demand(db, year, month)
    except DemandValidationError as exc:
        return _failure(str(exc))
    return _success("Weekday templates applied to the month", meta)


@app.post("/api/demand/{demand_id}/copy")
def demand_copy(
    demand_id: int,
    overrides: Optional[Dict[str, Any]] = Body(None),
    db=Depends(get_db),
) -> JSONResponse:
    try:
        demand = copy_demand(db, demand_id, overrides)
    except DemandValidationError as exc:
        return _failure(str(exc))
    if demand is None:
        return _failure("Demand not found", status_code=404)
    return _success("Demand copied", demand_to_dict(demand), status_code=201)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8080)
