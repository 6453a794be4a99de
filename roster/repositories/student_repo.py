# roster/repositories/student_repo.py
import random
from typing import Any

from supabase import AsyncClient

from roster.core.auth import Capability, check_capability
from roster.core.errors import FetchError, NotFound
from roster.core.outcome import Outcome
from roster.core.remote_errors import classify_remote_error
from roster.models.student import Student
from roster.schemas.student import (
    ICON_TYPES,
    StudentCreate,
    StudentRead,
    StudentUpdate,
    format_calendar_date,
)
from roster.services.session_service import SessionStore

# Column that holds the owning identity on the wire
OWNER_COLUMN = "user_id"


def to_wire(values: dict[str, Any]) -> dict[str, Any]:
    """Client field names/types -> row store columns."""
    row = dict(values)
    if row.get("course_date") is not None:
        row["course_date"] = format_calendar_date(row["course_date"])
    if "owner_id" in row:
        row[OWNER_COLUMN] = row.pop("owner_id")
    return row


def from_wire(row: dict[str, Any]) -> StudentRead:
    """Row store columns -> normalized Student."""
    values = dict(row)
    if OWNER_COLUMN in values:
        values["owner_id"] = values.pop(OWNER_COLUMN)
    return StudentRead.model_validate(values)


class StudentRepository:
    """
    Record repository over the remote Student collection.

    Responsibilities:
      - CRUD against the row store, returning canonical records
      - capability pre-flight: a denied mutation performs no network I/O
      - owner stamping on insert (when ownership tracking is enabled)

    Every operation returns an Outcome; nothing raises for expected failures.
    """

    def __init__(
        self,
        client: AsyncClient,
        session: SessionStore,
        table: str = Student.__tablename__,
        track_ownership: bool = True,
    ):
        self.client = client
        self.session = session
        self.table = table
        self.track_ownership = track_ownership

    def _rows(self):
        return self.client.table(self.table)

    # ----- Reads -----

    async def list(self) -> Outcome[list[StudentRead]]:
        """All students, newest first. An empty collection is a success."""
        try:
            response = await self._rows().select("*").order("created_at", desc=True).execute()
            return Outcome.success([from_wire(row) for row in response.data or []])
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "fetch students"))

    async def get_by_id(self, student_id: str) -> Outcome[StudentRead]:
        """Return one student, or NotFound if the id is absent."""
        try:
            response = await self._rows().select("*").eq("id", student_id).limit(1).execute()
            rows = response.data or []
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "fetch student"))

        if not rows:
            return Outcome.failure(NotFound("Student not found"))
        return self._normalized(rows[0], "fetch student")

    # ----- Mutations -----

    async def insert(self, candidate: StudentCreate) -> Outcome[StudentRead]:
        """
        Insert a new student and return the server-assigned record
        (generated id, timestamps).

        Requires the `create` capability.
        """
        denied = check_capability(self.session.profile, Capability.CREATE)
        if denied is not None:
            return Outcome.failure(denied)

        row = to_wire(candidate.model_dump())
        if row.get("icon_type") is None:
            row["icon_type"] = random.choice(ICON_TYPES)
        if self.track_ownership and self.session.identity is not None:
            row[OWNER_COLUMN] = self.session.identity.id

        try:
            response = await self._rows().insert(row).execute()
            rows = response.data or []
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "register student"))

        if not rows:
            return Outcome.failure(FetchError("Failed to register student: no record returned"))
        return self._normalized(rows[0], "register student")

    async def update(self, student_id: str, patch: StudentUpdate) -> Outcome[StudentRead]:
        """
        Partial update: only fields set on `patch` are sent.

        Requires the `update` capability. Returns the post-update record.
        """
        denied = check_capability(self.session.profile, Capability.UPDATE)
        if denied is not None:
            return Outcome.failure(denied)

        changes = to_wire(patch.model_dump(exclude_unset=True))
        if not changes:
            return await self.get_by_id(student_id)

        try:
            response = await self._rows().update(changes).eq("id", student_id).execute()
            rows = response.data or []
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "update student"))

        if not rows:
            return Outcome.failure(NotFound("Student not found"))
        return self._normalized(rows[0], "update student")

    async def delete(self, student_id: str) -> Outcome[None]:
        """
        Delete a student. Requires the `delete` capability.

        Deleting an id that is already gone is a success.
        """
        denied = check_capability(self.session.profile, Capability.DELETE)
        if denied is not None:
            return Outcome.failure(denied)

        try:
            await self._rows().delete().eq("id", student_id).execute()
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "delete student"))
        return Outcome.success(None)

    @staticmethod
    def _normalized(row: dict[str, Any], action: str) -> Outcome[StudentRead]:
        try:
            return Outcome.success(from_wire(row))
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, action))
