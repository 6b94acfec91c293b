from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from client import (  # noqa: E402
    TIMEOUT_MESSAGE,
    ApiGateway,
    DemandApi,
    NetworkFailure,
    RequestTimeout,
    ServerRejection,
    failure_message,
)
from settings import ClientSettings  # noqa: E402


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, raw: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self._raw = raw

    def json(self) -> Any:
        if self._raw is not None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Records every request and replays the queued responses or errors."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _api(*responses) -> tuple[DemandApi, FakeSession]:
    session = FakeSession(*responses)
    gateway = ApiGateway(ClientSettings(base_url="http://demand.test/"), session=session)
    return DemandApi(gateway), session


class GatewayTests(unittest.TestCase):
    def test_reads_use_the_read_timeout(self) -> None:
        api, session = _api(FakeResponse(200, {"success": True, "data": []}))
        api.list_all()
        call = session.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(call["url"], "http://demand.test/api/demand")
        self.assertEqual(call["timeout"], 15.0)

    def test_writes_have_no_client_timeout(self) -> None:
        api, session = _api(FakeResponse(200, {"success": True, "message": "Order swapped"}))
        result = api.swap(4, 9)
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["params"], {"a": 4, "b": 9})
        self.assertIsNone(call["timeout"])
        self.assertEqual(result.message, "Order swapped")

    def test_effective_list_sends_iso_date(self) -> None:
        payload = {
            "success": True,
            "data": [
                {
                    "id": 1,
                    "date": "2024-05-06",
                    "dayOfWeek": None,
                    "startTime": "09:00:00",
                    "endTime": "12:00:00",
                    "requiredSeats": 2,
                    "skill": None,
                }
            ],
        }
        api, session = _api(FakeResponse(200, payload))
        rows = api.list_effective(datetime.date(2024, 5, 6))
        self.assertEqual(session.calls[0]["params"], {"date": "2024-05-06"})
        self.assertEqual([row.id for row in rows], [1])
        self.assertEqual(rows[0].date, datetime.date(2024, 5, 6))

    def test_reorder_posts_plain_id_list(self) -> None:
        api, session = _api(FakeResponse(200, {"success": True}))
        api.reorder((3, 1, 2))
        self.assertEqual(session.calls[0]["json"], [3, 1, 2])

    def test_copy_posts_empty_object(self) -> None:
        api, session = _api(FakeResponse(201, {"success": True}))
        api.copy(5)
        self.assertEqual(session.calls[0]["url"], "http://demand.test/api/demand/5/copy")
        self.assertEqual(session.calls[0]["json"], {})

    def test_timeout_maps_to_request_timeout(self) -> None:
        api, _ = _api(requests.Timeout("slow"))
        with self.assertRaises(RequestTimeout) as ctx:
            api.list_all()
        self.assertEqual(failure_message(ctx.exception, "Failed to load"), TIMEOUT_MESSAGE)

    def test_connection_error_maps_to_network_failure(self) -> None:
        api, _ = _api(requests.ConnectionError("refused"))
        with self.assertRaises(NetworkFailure) as ctx:
            api.tidy()
        self.assertEqual(failure_message(ctx.exception, "Failed to tidy"), "Failed to tidy")

    def test_rejection_carries_server_message(self) -> None:
        api, _ = _api(FakeResponse(400, {"success": False, "message": "duplicate"}))
        with self.assertRaises(ServerRejection) as ctx:
            api.create({})
        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(str(ctx.exception), "duplicate")
        self.assertEqual(failure_message(ctx.exception, "Failed"), "duplicate")

    def test_rejection_without_body_uses_status(self) -> None:
        api, _ = _api(FakeResponse(500, raw="<html>"))
        with self.assertRaises(ServerRejection) as ctx:
            api.delete(3)
        self.assertEqual(str(ctx.exception), "HTTP 500")
        self.assertEqual(failure_message(ctx.exception, "Failed to delete"), "Failed to delete")

    def test_success_false_on_ok_status_is_a_rejection(self) -> None:
        api, _ = _api(FakeResponse(200, {"success": False, "message": "Skill not found."}))
        with self.assertRaises(ServerRejection) as ctx:
            api.update(2, {})
        self.assertEqual(ctx.exception.server_message, "Skill not found.")


if __name__ == "__main__":
    unittest.main()
