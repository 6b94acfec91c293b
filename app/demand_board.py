"""Actions behind the demand page.

The board never touches widgets directly: it talks to a ``BoardView`` and
schedules every network call through a task runner, so each request is a
suspension point whose continuation runs back on the GUI thread. There is no
request queue; overlapping actions simply settle in arrival order.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence

from client import ApiError, DemandApi, WriteResult, failure_message
from demand import (
    Creating,
    DemandForm,
    DemandOrder,
    DemandRecord,
    EditSession,
    Editing,
    FormState,
    SkillRef,
    begin_edit,
    reset_to_create,
    sanitize_order_ids,
)
from settings import ClientSettings

logger = logging.getLogger(__name__)

ALL_VIEW = "all"
EFFECTIVE_VIEW = "effective"
VIEW_TITLES = {
    ALL_VIEW: "All demand",
    EFFECTIVE_VIEW: "Effective for date",
}
LOAD_FAILED_MESSAGE = "Failed to load"
NO_DATE_MESSAGE = "Select a date first."

FAILURE_MESSAGES = {
    "delete": "Failed to delete the demand.",
    "swap": "Failed to change the order.",
    "reorder": "Failed to save the new order.",
    "tidy": "Failed to tidy the order.",
    "copy": "Failed to copy the demand.",
    "submit": "Failed to save the demand.",
    "initialize": "Failed to initialize the month.",
}


class TaskRunner(Protocol):
    def run(
        self,
        task: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
    ) -> None: ...


class BoardView(Protocol):
    def current_date(self) -> Optional[datetime.date]: ...

    def render_table(self, target: str, title: str, rows: Sequence[DemandRecord]) -> None: ...

    def render_error(self, target: str, title: str, message: str) -> None: ...

    def rendered_order(self, target: str) -> DemandOrder: ...

    def alert(self, message: str) -> None: ...

    def confirm(self, message: str) -> bool: ...

    def set_skill_options(self, skills: Sequence[SkillRef]) -> None: ...

    def read_form(self) -> DemandForm: ...

    def apply_form_state(self, state: FormState) -> None: ...

    def show_form_message(self, message: str) -> None: ...


class ImmediateRunner:
    """Runs tasks inline; used for scripted sessions and tests."""

    def run(self, task, on_success, on_error) -> None:
        try:
            result = task()
        except ApiError as exc:
            on_error(exc)
            return
        on_success(result)


class DemandBoard:
    def __init__(
        self,
        api: DemandApi,
        view: BoardView,
        runner: TaskRunner,
        settings: Optional[ClientSettings] = None,
    ) -> None:
        self.api = api
        self.view = view
        self.runner = runner
        self.settings = settings or ClientSettings()
        self.edit_session: EditSession = Creating()

    # ---------------- loading ----------------
    def default_form(self) -> DemandForm:
        return DemandForm.defaults(
            seats=self.settings.default_seats,
            start=self.settings.default_start,
            end=self.settings.default_end,
        )

    def load_skills(self) -> None:
        def _failed(error: BaseException) -> None:
            # Skill assignment is optional; the selector keeps only "Unspecified".
            logger.debug("Skill list unavailable: %s", error)

        self.runner.run(self.api.list_skills, self.view.set_skill_options, _failed)

    def _load(self, target: str, task: Callable[[], List[DemandRecord]]) -> None:
        title = VIEW_TITLES[target]

        def _loaded(rows: List[DemandRecord]) -> None:
            self.view.render_table(target, title, rows)

        def _failed(error: BaseException) -> None:
            logger.warning("Loading %s view failed: %s", target, error)
            self.view.render_error(target, title, failure_message(error, LOAD_FAILED_MESSAGE))

        self.runner.run(task, _loaded, _failed)

    def load_all(self) -> None:
        self._load(ALL_VIEW, self.api.list_all)

    def load_effective(self, date: datetime.date) -> None:
        self._load(EFFECTIVE_VIEW, lambda: self.api.list_effective(date))

    def request_effective(self) -> bool:
        date = self.view.current_date()
        if date is None:
            self.view.alert(NO_DATE_MESSAGE)
            return False
        self.load_effective(date)
        return True

    def refresh_all(self, date: Optional[datetime.date] = None) -> None:
        """Reload "all" and, when a date is populated, the effective view."""
        self.load_all()
        if date is not None:
            self.load_effective(date)

    # ---------------- mutations ----------------
    def _mutate(self, action: str, task: Callable[[], WriteResult]) -> None:
        def _done(_result: WriteResult) -> None:
            logger.info("Demand %s succeeded", action)
            self.refresh_all(self.view.current_date())

        def _failed(error: BaseException) -> None:
            logger.warning("Demand %s failed: %s", action, error)
            self.view.alert(failure_message(error, FAILURE_MESSAGES[action]))

        self.runner.run(task, _done, _failed)

    def swap(self, target: str, record_id: int, direction: str) -> bool:
        neighbor_id = self.view.rendered_order(target).neighbor(record_id, direction)
        if neighbor_id is None:
            return False
        self._mutate("swap", lambda: self.api.swap(record_id, neighbor_id))
        return True

    def submit_reorder(self, ordered_ids: Sequence[Any]) -> bool:
        ids = sanitize_order_ids(ordered_ids)
        if not ids:
            return False
        self._mutate("reorder", lambda: self.api.reorder(ids))
        return True

    def tidy(self) -> None:
        self._mutate("tidy", self.api.tidy)

    def delete(self, record_id: int) -> bool:
        if not self.view.confirm(f"Delete demand #{record_id}?"):
            return False
        self._mutate("delete", lambda: self.api.delete(record_id))
        return True

    def copy(self, record_id: int) -> None:
        self._mutate("copy", lambda: self.api.copy(record_id))

    def initialize_month(self, year: int, month: int) -> bool:
        prompt = (
            f"Replace all dated demand in {year}-{month:02d} with copies of the weekday templates?"
        )
        if not self.view.confirm(prompt):
            return False

        def _done(result: WriteResult) -> None:
            data = result.data or {}
            self.view.show_form_message(
                result.message
                or f"Created {data.get('created', 0)} and removed {data.get('deleted', 0)} entries."
            )
            self.refresh_all(self.view.current_date())

        def _failed(error: BaseException) -> None:
            logger.warning("Month initialization failed: %s", error)
            self.view.alert(failure_message(error, FAILURE_MESSAGES["initialize"]))

        self.runner.run(lambda: self.api.initialize_month(year, month), _done, _failed)
        return True

    # ---------------- edit session ----------------
    def begin_edit(self, target: str, record_id: int) -> bool:
        state = begin_edit(self.view.rendered_order(target), record_id)
        if state is None:
            return False
        self.edit_session = state.session
        self.view.apply_form_state(state)
        return True

    def cancel_edit(self) -> None:
        state = reset_to_create(self.default_form())
        self.edit_session = state.session
        self.view.apply_form_state(state)

    def submit(self) -> None:
        session = self.edit_session
        try:
            body = self.view.read_form().to_request_body()
        except (TypeError, ValueError):
            self.view.show_form_message("Check the seat count and skill fields.")
            return
        if isinstance(session, Editing):
            task = lambda: self.api.update(session.record_id, body)  # noqa: E731
            fallback = "Updated"
        else:
            task = lambda: self.api.create(body)  # noqa: E731
            fallback = "Created"

        def _done(result: WriteResult) -> None:
            logger.info("Demand %s saved", "update" if isinstance(session, Editing) else "create")
            self.cancel_edit()
            self.view.show_form_message(result.message or fallback)
            self.refresh_all(self.view.current_date())

        def _failed(error: BaseException) -> None:
            logger.warning("Saving demand failed: %s", error)
            self.view.show_form_message(failure_message(error, FAILURE_MESSAGES["submit"]))

        self.runner.run(task, _done, _failed)
