from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Set

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from client import ApiError, NetworkFailure

logger = logging.getLogger(__name__)


class _TaskRelay(QObject):
    """Lives on the GUI thread; worker emissions reach it through queued connections."""

    succeeded = Signal(object)
    failed = Signal(object)

    def __init__(
        self,
        on_success: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
        on_settled: Callable[["_TaskRelay"], None],
    ) -> None:
        super().__init__()
        self._on_success = on_success
        self._on_error = on_error
        self._on_settled = on_settled
        self.succeeded.connect(self._deliver_success)
        self.failed.connect(self._deliver_error)

    @Slot(object)
    def _deliver_success(self, result: Any) -> None:
        try:
            self._on_success(result)
        finally:
            self._on_settled(self)

    @Slot(object)
    def _deliver_error(self, error: BaseException) -> None:
        try:
            self._on_error(error)
        finally:
            self._on_settled(self)


class _NetworkTask(QRunnable):
    def __init__(self, task: Callable[[], Any], relay: _TaskRelay) -> None:
        super().__init__()
        self.task = task
        self.relay = relay

    def run(self) -> None:
        try:
            result = self.task()
        except ApiError as exc:
            self.relay.failed.emit(exc)
            return
        except Exception as exc:  # surface unexpected worker errors to the action
            logger.exception("Background request crashed")
            self.relay.failed.emit(NetworkFailure(str(exc)))
            return
        self.relay.succeeded.emit(result)


class QtTaskRunner:
    """Runs each request on a thread pool and calls back on the GUI thread.

    Requests are independent: nothing is queued or cancelled, so two
    overlapping actions settle in whatever order their responses arrive.
    """

    def __init__(self, pool: Optional[QThreadPool] = None) -> None:
        self.pool = pool or QThreadPool.globalInstance()
        self._in_flight: Set[_TaskRelay] = set()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def run(
        self,
        task: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
    ) -> None:
        relay = _TaskRelay(on_success, on_error, self._in_flight.discard)
        self._in_flight.add(relay)
        self.pool.start(_NetworkTask(task, relay))

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until running requests finish or ``msecs`` elapse."""
        return self.pool.waitForDone(msecs)
