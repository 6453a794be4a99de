# roster/services/view_state.py
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import ValidationError as SchemaValidationError

from roster.core.auth import Capability, capabilities_for, check_capability
from roster.core.errors import NotFound, RequestInFlight, RosterError, ValidationError
from roster.core.outcome import Outcome
from roster.repositories.student_repo import StudentRepository
from roster.schemas.student import StudentDetail, StudentRead, StudentUpdate, format_long_date
from roster.schemas.view import ViewError, ViewSnapshot
from roster.services.form import StudentForm, errors_from_schema
from roster.services.session_service import SessionStore

logger = logging.getLogger(__name__)

ALL_COURSES = "all"


class Mode(str, Enum):
    FORM = "form"
    LIST = "list"
    DETAIL = "detail"


def _newest_first(students: list[StudentRead]) -> list[StudentRead]:
    return sorted(
        students,
        key=lambda s: s.created_at.timestamp() if s.created_at else 0.0,
        reverse=True,
    )


class ViewStateController:
    """
    In-memory state behind the form, list and detail screens.

    Cache policy:
      - the Student collection is replaced wholesale by every successful
        list, and re-listed after every successful mutation
      - whichever list response resolves last wins
      - a session change resets everything (registered on the SessionStore)

    Mutations are serialized per controller: while one is awaiting the
    remote store, the next one fails with RequestInFlight.
    """

    def __init__(self, repo: StudentRepository, session: SessionStore):
        self.repo = repo
        self.session = session
        self.form = StudentForm()
        self._generation = 0
        self._clear()
        session.add_reset_listener(self.reset)

    def _clear(self) -> None:
        self.mode = Mode.FORM
        self._history: list[Mode] = []
        self.students: list[StudentRead] = []
        self.loaded = False
        self.selected: StudentRead | None = None
        self.search = ""
        self.course_filter = ALL_COURSES
        self.expanded_notes: set[str] = set()
        self.loading = False
        self.busy = False
        self.error: RosterError | None = None
        self.form.reset()

    def reset(self) -> None:
        """Drop every cached record and all UI state (session changed)."""
        self._generation += 1
        self._clear()

    # ----- Navigation -----

    def navigate(self, mode: Mode) -> None:
        if mode == self.mode:
            return
        self._history.append(self.mode)
        self.mode = mode

    def back(self) -> Mode:
        leaving = self.mode
        self.mode = self._history.pop() if self._history else Mode.FORM
        if leaving == Mode.DETAIL and self.mode != Mode.DETAIL:
            self.selected = None
        if leaving == Mode.FORM and self.form.is_editing:
            self.form.reset()
        return self.mode

    def start_create(self) -> None:
        if self.form.is_editing:
            self.form.reset()
        self.navigate(Mode.FORM)

    def start_edit(self, student_id: str) -> Outcome[StudentRead]:
        student = self._find(student_id)
        if student is None:
            return Outcome.failure(NotFound("Student not found"))
        self.form.load(student)
        self.navigate(Mode.FORM)
        return Outcome.success(student)

    # ----- Filtering -----

    def set_search(self, term: str) -> None:
        self.search = term

    def set_course_filter(self, course: str | None) -> None:
        self.course_filter = course or ALL_COURSES

    def visible(self) -> list[StudentRead]:
        """Students matching the search term AND the course filter."""
        term = self.search.strip().lower()
        result = []
        for student in self.students:
            if term and not any(
                term in value.lower()
                for value in (student.name, student.id_number, student.email, student.mobile)
            ):
                continue
            if self.course_filter != ALL_COURSES and student.course_name != self.course_filter:
                continue
            result.append(student)
        return result

    def course_options(self) -> list[str]:
        return sorted({s.course_name for s in self.students})

    def toggle_notes(self, student_id: str) -> bool:
        if student_id in self.expanded_notes:
            self.expanded_notes.discard(student_id)
            return False
        self.expanded_notes.add(student_id)
        return True

    # ----- Remote reads -----

    async def refresh(self) -> Outcome[list[StudentRead]]:
        """
        Re-list the collection and replace the cache.

        Waits for session bootstrap first; without an identity nothing is
        fetched and the cache is emptied.
        """
        await self.session.wait_ready()
        if self.session.identity is None:
            self.students = []
            self.loaded = True
            return Outcome.success([])

        generation = self._generation
        self.loading = True
        try:
            outcome = await self.repo.list()
        finally:
            self.loading = False

        if generation != self._generation:
            return outcome
        if outcome.ok:
            self.students = outcome.value
            self.loaded = True
            self.error = None
        else:
            self.error = outcome.error
        return outcome

    async def show_list(self, refresh: bool = True) -> Outcome[list[StudentRead]]:
        self.navigate(Mode.LIST)
        if refresh or not self.loaded:
            return await self.refresh()
        return Outcome.success(self.students)

    async def open_detail(self, student_id: str) -> Outcome[StudentRead]:
        """
        Fetch one record for the detail screen. A missing record sends the
        view back to the list.
        """
        outcome = await self._fetch_one(student_id)
        if outcome.ok:
            self.selected = outcome.value
            self.navigate(Mode.DETAIL)
            self.error = None
        else:
            self.error = outcome.error
            if isinstance(outcome.error, NotFound):
                self.selected = None
                self.navigate(Mode.LIST)
        return outcome

    async def _fetch_one(self, student_id: str) -> Outcome[StudentRead]:
        # Signed-out sessions see no rows, so nothing is fetched
        await self.session.wait_ready()
        if self.session.identity is None:
            return Outcome.failure(NotFound("Student not found"))
        return await self.repo.get_by_id(student_id)

    def detail(self) -> StudentDetail | None:
        if self.selected is None:
            return None
        return StudentDetail(
            **self.selected.model_dump(),
            course_date_display=format_long_date(self.selected.course_date),
            notes_expanded=self.selected.id in self.expanded_notes,
        )

    # ----- Mutations -----

    async def submit(self) -> Outcome[StudentRead]:
        """
        Validate the form and insert (or, when editing, update) the record.
        On success the form is cleared and the view moves to the list.
        """
        if self.busy:
            return Outcome.failure(RequestInFlight("A submission is already in progress"))

        if not self.form.validate():
            error = ValidationError("Please correct the highlighted fields", self.form.errors)
            self.error = error
            return Outcome.failure(error)

        editing = self.form.editing
        try:
            if editing is None:
                payload = self.form.to_create()
            else:
                payload = self.form.to_update()
        except SchemaValidationError as e:
            self.form.errors = errors_from_schema(e)
            error = ValidationError("Please correct the highlighted fields", self.form.errors)
            self.error = error
            return Outcome.failure(error)

        if editing is None:
            outcome = await self._mutate(lambda: self.repo.insert(payload))
        else:
            outcome = await self._mutate(lambda: self.repo.update(editing.id, payload))

        if outcome.ok:
            self.form.reset()
            self.navigate(Mode.LIST)
        return outcome

    async def submit_values(self, values: dict[str, Any]) -> Outcome[StudentRead]:
        """
        Submit a whole form payload at once (API callers).

        The form is rebuilt first: blank for a new registration, reloaded
        from the Student when editing. Only `values` are applied on top, so
        nothing typed into an earlier rejected attempt is carried over.
        """
        if self.busy:
            return Outcome.failure(RequestInFlight("A submission is already in progress"))
        if self.form.editing is not None:
            self.form.load(self.form.editing)
        else:
            self.form.reset()
        self.form.fill(values)
        return await self.submit()

    async def save_edit(self, student_id: str, patch: StudentUpdate) -> Outcome[StudentRead]:
        return await self._mutate(lambda: self.repo.update(student_id, patch))

    async def toggle_accepted(self, student_id: str) -> Outcome[StudentRead]:
        denied = check_capability(self.session.profile, Capability.UPDATE)
        if denied is not None:
            return Outcome.failure(denied)

        student = self._find(student_id)
        if student is None:
            # Not cached yet (fresh start or after a reset): flip the stored value
            fetched = await self._fetch_one(student_id)
            if not fetched.ok:
                self.error = fetched.error
                return fetched
            student = fetched.value
        patch = StudentUpdate(accepted=not student.accepted)
        return await self._mutate(lambda: self.repo.update(student_id, patch))

    async def remove(self, student_id: str) -> Outcome[None]:
        outcome = await self._mutate(
            lambda: self.repo.delete(student_id),
            removed_id=student_id,
        )
        if outcome.ok and self.selected is not None and self.selected.id == student_id:
            self.selected = None
            if self.mode == Mode.DETAIL:
                self.mode = Mode.LIST
        return outcome

    async def _mutate(
        self,
        call: Callable[[], Awaitable[Outcome]],
        removed_id: str | None = None,
    ) -> Outcome:
        if self.busy:
            return Outcome.failure(RequestInFlight("A submission is already in progress"))

        generation = self._generation
        self.busy = True
        self.error = None
        try:
            outcome = await call()
        finally:
            self.busy = False

        if generation != self._generation:
            return outcome
        if not outcome.ok:
            self.error = outcome.error
            return outcome

        record = outcome.value
        if isinstance(record, StudentRead) and self.selected is not None and self.selected.id == record.id:
            self.selected = record

        listed = await self.refresh()
        if not listed.ok and generation == self._generation:
            # Re-list failed: rebuild from the canonical record instead
            others = [s for s in self.students if s.id not in (removed_id, getattr(record, "id", None))]
            if isinstance(record, StudentRead):
                others.append(record)
            self.students = _newest_first(others)
        return outcome

    # ----- Rendering -----

    def _find(self, student_id: str) -> StudentRead | None:
        if self.selected is not None and self.selected.id == student_id:
            return self.selected
        return next((s for s in self.students if s.id == student_id), None)

    def snapshot(self) -> ViewSnapshot:
        error = None
        if self.error is not None:
            error = ViewError(
                error=self.error.code,
                message=self.error.message,
                fields=getattr(self.error, "errors", {}),
            )
        visible = self.visible()
        return ViewSnapshot(
            mode=self.mode.value,
            loading=self.loading or self.session.loading,
            busy=self.busy,
            students=visible,
            total=len(self.students),
            search=self.search,
            course_filter=self.course_filter,
            course_options=self.course_options(),
            selected=self.detail(),
            capabilities=sorted(c.value for c in capabilities_for(self.session.profile)),
            error=error,
        )
