# roster/routers/view.py
from fastapi import APIRouter, Depends
from pydantic import ConfigDict
from sqlmodel import SQLModel

from roster.context import AppContext, get_context
from roster.schemas.student import StudentFormInput, StudentRead
from roster.schemas.view import ViewSnapshot

router = APIRouter(prefix="/view", tags=["View"])


class FilterUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    search: str | None = None
    course: str | None = None


@router.get("", response_model=ViewSnapshot)
def read_view(ctx: AppContext = Depends(get_context)):
    """Current screen state for the rendering layer."""
    return ctx.view.snapshot()


@router.put("/filters", response_model=ViewSnapshot)
def update_filters(payload: FilterUpdate, ctx: AppContext = Depends(get_context)):
    """Change search / course filter locally, without re-listing."""
    if payload.search is not None:
        ctx.view.set_search(payload.search)
    if payload.course is not None:
        ctx.view.set_course_filter(payload.course)
    return ctx.view.snapshot()


@router.post("/back", response_model=ViewSnapshot)
def go_back(ctx: AppContext = Depends(get_context)):
    ctx.view.back()
    return ctx.view.snapshot()


@router.post("/form", response_model=ViewSnapshot)
def open_form(ctx: AppContext = Depends(get_context)):
    ctx.view.start_create()
    return ctx.view.snapshot()


@router.post("/edit/{student_id}", response_model=ViewSnapshot)
def open_edit_form(student_id: str, ctx: AppContext = Depends(get_context)):
    """Prefill the form from a cached student for editing."""
    ctx.view.start_edit(student_id).unwrap_http()
    return ctx.view.snapshot()


@router.post("/form/submit", response_model=StudentRead)
async def submit_form(payload: StudentFormInput, ctx: AppContext = Depends(get_context)):
    """
    Submit the open form: insert when registering, update when editing.

    Fields left out of the payload keep the form's current value.
    """
    outcome = await ctx.view.submit_values(payload.model_dump(exclude_unset=True))
    return outcome.unwrap_http()


@router.post("/refresh", response_model=ViewSnapshot)
async def refresh(ctx: AppContext = Depends(get_context)):
    outcome = await ctx.view.refresh()
    outcome.unwrap_http()
    return ctx.view.snapshot()
