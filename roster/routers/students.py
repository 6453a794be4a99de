# roster/routers/students.py
from fastapi import APIRouter, Depends, status

from roster.context import AppContext, get_context
from roster.core.auth import Capability, require_capability
from roster.schemas.student import StudentDetail, StudentFormInput, StudentRead, StudentUpdate

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("", response_model=list[StudentRead])
async def list_students(
    q: str | None = None,
    course: str | None = None,
    refresh: bool = True,
    ctx: AppContext = Depends(get_context),
):
    """
    Show the list view.

    Query:
      - q: case-insensitive search over name / id number / email / mobile
      - course: exact course name, or "all"
      - refresh: re-list from the remote store (default on every mount)

    An unauthenticated session gets an empty list and no remote call.
    """
    if q is not None:
        ctx.view.set_search(q)
    if course is not None:
        ctx.view.set_course_filter(course)
    outcome = await ctx.view.show_list(refresh=refresh)
    outcome.unwrap_http()
    return ctx.view.visible()


@router.get("/{student_id}", response_model=StudentDetail)
async def get_student(student_id: str, ctx: AppContext = Depends(get_context)):
    """Show the detail view. 404 sends the view back to the list."""
    outcome = await ctx.view.open_detail(student_id)
    outcome.unwrap_http()
    return ctx.view.detail()


@router.post(
    "",
    response_model=StudentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability(Capability.CREATE))],
)
async def register_student(
    payload: StudentFormInput,
    ctx: AppContext = Depends(get_context),
):
    """
    Submit the registration form (teacher/admin).

    422 carries per-field messages under `detail.fields`.
    """
    ctx.view.start_create()
    outcome = await ctx.view.submit_values(payload.model_dump(exclude_unset=True))
    return outcome.unwrap_http()


@router.patch(
    "/{student_id}",
    response_model=StudentRead,
    dependencies=[Depends(require_capability(Capability.UPDATE))],
)
async def update_student(
    student_id: str,
    payload: StudentUpdate,
    ctx: AppContext = Depends(get_context),
):
    """Partial update (teacher/admin). Only supplied fields change."""
    outcome = await ctx.view.save_edit(student_id, payload)
    return outcome.unwrap_http()


@router.post(
    "/{student_id}/accepted",
    response_model=StudentRead,
    dependencies=[Depends(require_capability(Capability.UPDATE))],
)
async def toggle_accepted(student_id: str, ctx: AppContext = Depends(get_context)):
    """Flip the accepted flag (teacher/admin)."""
    outcome = await ctx.view.toggle_accepted(student_id)
    return outcome.unwrap_http()


@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_capability(Capability.DELETE))],
)
async def delete_student(student_id: str, ctx: AppContext = Depends(get_context)):
    """Delete a student (admin only). Already-deleted ids succeed."""
    outcome = await ctx.view.remove(student_id)
    outcome.unwrap_http()


@router.post("/{student_id}/notes-expanded")
def toggle_notes(student_id: str, ctx: AppContext = Depends(get_context)):
    """Local UI flag only, nothing is persisted."""
    return {"id": student_id, "expanded": ctx.view.toggle_notes(student_id)}
