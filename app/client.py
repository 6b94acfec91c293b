"""REST access to the demand backend.

``ApiGateway`` owns the transport concerns (timeouts, error mapping, the
``{success, message, data}`` envelope) and ``DemandApi`` exposes one method
per endpoint.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from demand import DemandRecord, SkillRef
from settings import ClientSettings

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out"


class ApiError(Exception):
    """Base class for every failure raised by the gateway."""


class NetworkFailure(ApiError):
    pass


class RequestTimeout(ApiError):
    def __init__(self, message: str = TIMEOUT_MESSAGE) -> None:
        super().__init__(message)


class ServerRejection(ApiError):
    def __init__(self, status: int, server_message: Optional[str] = None) -> None:
        self.status = status
        self.server_message = server_message or None
        super().__init__(self.server_message or f"HTTP {status}")


@dataclass(frozen=True)
class WriteResult:
    message: Optional[str] = None
    data: Any = None


def failure_message(error: BaseException, fallback: str) -> str:
    """Text shown to the user for a failed action."""
    if isinstance(error, RequestTimeout):
        return TIMEOUT_MESSAGE
    if isinstance(error, ServerRejection) and error.server_message:
        return error.server_message
    return fallback


class ApiGateway:
    def __init__(self, settings: ClientSettings, session=None) -> None:
        self.base_url = settings.base_url.rstrip("/")
        self.read_timeout = settings.read_timeout
        self.session = session if session is not None else requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        logger.debug("%s %s params=%s", method, path, params)
        kwargs: Dict[str, Any] = {"params": params, "timeout": timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        try:
            response = self.session.request(method, self._url(path), **kwargs)
        except requests.Timeout as exc:
            raise RequestTimeout() from exc
        except requests.RequestException as exc:
            raise NetworkFailure(str(exc)) from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}
        status = response.status_code
        if status < 200 or status >= 300 or payload.get("success") is False:
            logger.warning("%s %s rejected with HTTP %s", method, path, status)
            raise ServerRejection(status, payload.get("message"))
        return payload

    def read(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        payload = self._send("GET", path, params=params, timeout=self.read_timeout)
        return payload.get("data")

    def write(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
    ) -> WriteResult:
        # Writes are never cut short on the client side.
        payload = self._send(method, path, params=params, json_body=json_body, timeout=None)
        return WriteResult(message=payload.get("message"), data=payload.get("data"))


class DemandApi:
    def __init__(self, gateway: ApiGateway) -> None:
        self.gateway = gateway

    @staticmethod
    def _records(data: Any) -> List[DemandRecord]:
        return [DemandRecord.from_payload(item) for item in (data or [])]

    def list_all(self) -> List[DemandRecord]:
        return self._records(self.gateway.read("/api/demand"))

    def list_effective(self, date: datetime.date) -> List[DemandRecord]:
        return self._records(self.gateway.read("/api/demand/effective", {"date": date.isoformat()}))

    def list_skills(self) -> List[SkillRef]:
        return [SkillRef.from_payload(item) for item in (self.gateway.read("/api/skills") or [])]

    def create(self, body: Dict[str, Any]) -> WriteResult:
        return self.gateway.write("POST", "/api/demand", json_body=body)

    def update(self, record_id: int, body: Dict[str, Any]) -> WriteResult:
        return self.gateway.write("PUT", f"/api/demand/{record_id}", json_body=body)

    def delete(self, record_id: int) -> WriteResult:
        return self.gateway.write("DELETE", f"/api/demand/{record_id}")

    def copy(self, record_id: int, overrides: Optional[Dict[str, Any]] = None) -> WriteResult:
        return self.gateway.write("POST", f"/api/demand/{record_id}/copy", json_body=overrides or {})

    def swap(self, first_id: int, second_id: int) -> WriteResult:
        return self.gateway.write("POST", "/api/demand/swap", params={"a": first_id, "b": second_id})

    def reorder(self, ordered_ids: Sequence[int]) -> WriteResult:
        return self.gateway.write("POST", "/api/demand/reorder", json_body=list(ordered_ids))

    def tidy(self) -> WriteResult:
        return self.gateway.write("POST", "/api/demand/sort")

    def initialize_month(self, year: int, month: int) -> WriteResult:
        return self.gateway.write(
            "POST",
            "/api/demand/monthly/initialize",
            json_body={"year": year, "month": month},
        )
