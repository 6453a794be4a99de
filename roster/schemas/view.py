# roster/schemas/view.py
from sqlmodel import SQLModel

from roster.schemas.student import StudentDetail, StudentRead


class ViewError(SQLModel):
    error: str
    message: str
    fields: dict[str, str] = {}


class ViewSnapshot(SQLModel):
    """
    Everything the rendering layer needs to draw the current screen.

    `capabilities` decides which controls are shown (add / edit / delete).
    """

    mode: str
    loading: bool
    busy: bool
    students: list[StudentRead]
    total: int
    search: str
    course_filter: str
    course_options: list[str]
    selected: StudentDetail | None = None
    capabilities: list[str] = []
    error: ViewError | None = None
