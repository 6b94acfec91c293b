from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database as db  # noqa: E402
from api import app  # noqa: E402
from client import ApiGateway, DemandApi  # noqa: E402
from demand import DOWN, DemandForm  # noqa: E402
from demand_board import ALL_VIEW, EFFECTIVE_VIEW, DemandBoard, ImmediateRunner  # noqa: E402
from settings import ClientSettings  # noqa: E402

from test_demand_board import RecordingView  # noqa: E402

BASE_URL = "http://demand.test"


class TestClientSession:
    """Lets ``ApiGateway`` talk to the FastAPI app through its test client."""

    def __init__(self, test_client: TestClient) -> None:
        self.test_client = test_client

    def request(self, method, url, params=None, timeout=None, json=None):
        path = url[len(BASE_URL):]
        return self.test_client.request(method, path, params=params, json=json)


@pytest.fixture
def board_and_view(monkeypatch):
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(db, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False, future=True))
    with TestClient(app) as test_client:
        gateway = ApiGateway(ClientSettings(base_url=BASE_URL), session=TestClientSession(test_client))
        view = RecordingView(datetime.date(2024, 5, 6))
        board = DemandBoard(DemandApi(gateway), view, ImmediateRunner())
        yield board, view
    engine.dispose()


def _add(board, view, **fields) -> None:
    values = {"day_of_week": "MONDAY", "start_time": "09:00", "end_time": "17:00", "required_seats": 2}
    values.update(fields)
    view.form = DemandForm(**values)
    board.submit()


def test_create_swap_and_reorder_round_trip(board_and_view) -> None:
    board, view = board_and_view
    _add(board, view, start_time="08:00", end_time="10:00")
    _add(board, view, start_time="10:00", end_time="12:00")
    _add(board, view, day_of_week="TUESDAY")
    first, second, third = view.orders[ALL_VIEW].ids()
    # Only the Monday rows apply to 2024-05-06.
    assert view.orders[EFFECTIVE_VIEW].ids() == [first, second]

    board.swap(ALL_VIEW, first, DOWN)
    assert view.orders[ALL_VIEW].ids() == [second, first, third]

    board.submit_reorder([third, "bogus", first, second])
    assert view.orders[ALL_VIEW].ids() == [third, first, second]
    assert view.alerts == []


def test_edit_updates_record_in_place(board_and_view) -> None:
    board, view = board_and_view
    _add(board, view)
    record_id = view.orders[ALL_VIEW].ids()[0]

    board.begin_edit(ALL_VIEW, record_id)
    assert view.states[-1].form.start_time == "09:00"
    view.form = DemandForm(day_of_week="MONDAY", start_time="09:00", end_time="17:00", required_seats=7)
    board.submit()

    assert view.orders[ALL_VIEW].ids() == [record_id]
    assert view.orders[ALL_VIEW].find(record_id).required_seats == 7
    assert view.messages[-1] == "Demand updated"


def test_server_validation_message_reaches_the_form(board_and_view) -> None:
    board, view = board_and_view
    _add(board, view, start_time="18:00", end_time="09:00")
    assert view.messages == ["Start time must be before end time."]
    assert view.orders[ALL_VIEW].ids() == []


def test_copy_delete_and_tidy(board_and_view) -> None:
    board, view = board_and_view
    _add(board, view, day_of_week="SATURDAY")
    _add(board, view, day_of_week="SUNDAY")
    saturday, sunday = view.orders[ALL_VIEW].ids()

    board.copy(saturday)
    assert len(view.orders[ALL_VIEW]) == 3
    board.tidy()
    assert view.orders[ALL_VIEW].ids()[0] == sunday

    board.delete(sunday)
    assert sunday not in view.orders[ALL_VIEW].ids()
